"""
Исключения сервиса поиска

Ошибки движка (недоступность, таймауты) не выходят за границу компонента:
они переводят сервис в режим недоступности и превращаются в пустые
значения. Наружу пробрасываются только ошибки входных данных.
"""


class SearchServiceError(Exception):
    """Базовое исключение сервиса поиска"""


class ConnectivityError(SearchServiceError):
    """Движок недоступен или не ответил за отведённое время"""


class SchemaError(SearchServiceError):
    """Конфликт маппинга при создании индекса"""

    def __init__(self, index: str, reason: str):
        super().__init__(f"Failed to create index '{index}': {reason}")
        self.index = index
        self.reason = reason


class InvalidQueryError(SearchServiceError, ValueError):
    """Некорректные параметры поискового запроса"""


class InvalidDocumentError(SearchServiceError, ValueError):
    """Некорректная запись каталога"""
