"""
Standardized API Error Responses

Every API error is JSON: {"error": "<short label>", "message": "<Polish text>"}
plus optional extra keys (validation details, retry hints).
"""
from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException


INTERNAL_ERROR_MESSAGE = "Wystąpił błąd serwera. Spróbuj ponownie później."


def api_error(error: str, message: str = None, status_code: int = 400, **extra):
    """
    Create a standardized API error response.

    Args:
        error: Short English label (e.g. 'Validation failed', 'Unauthorized')
        message: User-facing message, omitted from the body when None
        status_code: HTTP status code (default 400)
        **extra: Additional body keys such as `details` or `retry_after`

    Example:
        return api_error('Invalid input', 'Klucz API jest za krótki', 400)
    """
    body = {'error': error}
    if message is not None:
        body['message'] = message
    body.update(extra)
    response = jsonify(body)
    response.status_code = status_code
    return response


def validation_error(details, message="Nieprawidłowe dane wejściowe"):
    return api_error('Validation failed', message, 400, details=details)


def register_error_handlers(app):
    """
    Register JSON error handlers on the application (or a blueprint).
    """

    @app.errorhandler(400)
    def bad_request(e):
        message = str(e.description) if getattr(e, 'description', None) else 'Nieprawidłowe żądanie.'
        return api_error('Bad request', message, 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return api_error('Unauthorized', 'Musisz być zalogowany, aby kontynuować.', 401)

    @app.errorhandler(403)
    def forbidden(e):
        current_app.logger.warning(f"403 Forbidden: {e}")
        return api_error('Forbidden', 'Nie masz uprawnień do tego zasobu.', 403)

    @app.errorhandler(404)
    def not_found(e):
        return api_error('Not found', 'Nie znaleziono zasobu.', 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error('Method not allowed', 'Metoda nie jest dozwolona dla tego zasobu.', 405)

    @app.errorhandler(429)
    def rate_limited(e):
        current_app.logger.warning(f"429 Too Many Requests: {e}")
        return api_error('Rate limit exceeded', 'Zbyt wiele żądań. Spróbuj ponownie później.', 429)

    @app.errorhandler(500)
    def internal_error(e):
        current_app.logger.error(f"500 Internal Server Error: {e}")
        return api_error('Internal server error', INTERNAL_ERROR_MESSAGE, 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """Handle any other HTTP exceptions with JSON response."""
        return api_error(e.name, e.description or str(e), e.code)

    @app.errorhandler(Exception)
    def handle_exception(e):
        current_app.logger.error(f"Unhandled Exception: {e}", exc_info=True)
        return api_error('Internal server error', INTERNAL_ERROR_MESSAGE, 500)
