# API Error Types


class ApiError(Exception):
    """Error whose message is safe to return to the caller"""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'ok': False, 'error': self.message}


class InvalidRequest(ApiError):
    status_code = 400


class ResourceNotFound(ApiError):
    status_code = 404
