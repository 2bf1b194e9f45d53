"""Кастомные исключения сервиса проверки ссылок."""


class LinkCheckerError(Exception):
    """Общая ошибка сервиса."""


class StorageError(LinkCheckerError):
    """Ошибка персистентности состояния."""


class StateSaveError(StorageError):
    """Не удалось сериализовать или записать снапшот."""


class StateRestoreError(StorageError):
    """Файл состояния есть, но прочитать или распарсить его не удалось."""


class InvalidLinkError(LinkCheckerError):
    """Из ссылки невозможно собрать HTTP-запрос."""

    def __init__(self, link: str, reason: str = "") -> None:
        self.link = link
        super().__init__(f"Invalid link {link!r}: {reason}" if reason else f"Invalid link {link!r}")
