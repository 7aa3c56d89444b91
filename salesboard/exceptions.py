"""
Custom exceptions for the salesboard application.
Services raise these; the API layer turns them into {success: false, error} responses.
"""


class SalesboardException(Exception):
    """Base exception for salesboard application"""
    status_code = 400


class NotAuthenticatedException(SalesboardException):
    """Raised when the request carries no valid session"""
    status_code = 401

    def __init__(self):
        super().__init__("Not authenticated")


class AccessDeniedException(SalesboardException):
    """Raised when the current user's role does not allow an action"""
    status_code = 403

    def __init__(self, reason: str = "Access denied"):
        self.reason = reason
        super().__init__(reason)


class NotFoundException(SalesboardException):
    """Raised when a record is not found"""
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class OrderNotFoundException(NotFoundException):
    def __init__(self, order_id: int):
        super().__init__("Order", order_id)


class UserNotFoundException(NotFoundException):
    def __init__(self, user_id: int):
        super().__init__("User", user_id)


class TeamNotFoundException(NotFoundException):
    def __init__(self, team_id: int):
        super().__init__("Team", team_id)


class AchievementNotFoundException(NotFoundException):
    def __init__(self, achievement_id: int):
        super().__init__("Achievement", achievement_id)


class PointsAlreadyAwardedException(SalesboardException):
    """Raised when an order has already been rewarded"""
    status_code = 409

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Points for order {order_id} have already been awarded")


class InvalidStatusTransitionException(SalesboardException):
    """Raised when an order status change is not allowed"""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from '{current}' to '{requested}'")


class ValidationException(SalesboardException):
    """Raised when data validation fails"""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for {field}: {message}")


class DatabaseException(SalesboardException):
    """Raised when database operations fail"""
    status_code = 500

    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Database {operation} failed: {details}")
