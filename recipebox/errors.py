"""Error taxonomy for RecipeBox.

Each error carries the HTTP status the web layer answers with. Handlers in
``recipebox.main`` translate them into responses; components only raise.
"""


class RecipeBoxError(Exception):
    """Base exception for all RecipeBox errors."""
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(RecipeBoxError):
    """Malformed form or multipart input."""
    status_code = 400
    public_message = "Invalid input"


class MalformedUpload(ValidationError):
    """The attached file could not be read or exceeds the size bound."""
    public_message = "Malformed upload"


class AuthenticationFailure(RecipeBoxError):
    status_code = 401
    public_message = "Authentication failed"


class InvalidCredentials(AuthenticationFailure):
    """Unknown username or wrong password. The two are never distinguished."""
    public_message = "Invalid credentials"


class Unauthenticated(RecipeBoxError):
    """No valid session on a protected path. Answered with a redirect to /login."""
    status_code = 303
    public_message = "Login required"


class NotFound(RecipeBoxError):
    status_code = 404
    public_message = "Not found"


class Conflict(RecipeBoxError):
    status_code = 400
    public_message = "Conflict"


class DuplicateUsername(Conflict):
    public_message = "Username taken"


class PersistenceFailure(RecipeBoxError):
    """Store unreachable or query error."""
    status_code = 500


class HashingFailure(RecipeBoxError):
    status_code = 500
