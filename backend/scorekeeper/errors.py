from flask import jsonify


class ScorekeeperError(Exception):
    """Base class for errors raised by scorekeeper services."""

    status_code = 500

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        payload = {'error': self.message}
        if self.field:
            payload['field'] = self.field
        return payload


class ValidationError(ScorekeeperError):
    """Bad user input: short names, missing or out-of-range numbers."""

    status_code = 400


class InvalidState(ScorekeeperError):
    """The play is not in a state that allows the requested operation."""

    status_code = 409


class PersistenceError(ScorekeeperError):
    """A storage call failed. The caller may retry the same operation."""

    status_code = 503


def register_error_handlers(flask_app) -> None:
    def handle_scorekeeper_error(exc: ScorekeeperError):
        flask_app.logger.info(f"[error] {type(exc).__name__}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    flask_app.register_error_handler(ScorekeeperError, handle_scorekeeper_error)
