class NotFoundError(LookupError):
    """Запрошенная сущность (документ, композит, схема) не найдена"""


class AuthorizationError(PermissionError):
    """У пользователя нет прав на операцию"""


class InvalidTransitionError(ValueError):
    """Недопустимый переход статуса запроса на изменение"""
