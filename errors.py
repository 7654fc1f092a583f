"""
Исключения кодека Хаффмана.
Любая ошибка прерывает текущую операцию сжатия или разжатия целиком.
"""


class HuffmanError(Exception):
    pass


class EmptyInputError(HuffmanError):
    pass


class EmptyQueueError(HuffmanError):
    pass


class UnmappedSymbolError(HuffmanError):
    def __init__(self, symbol: int):
        super().__init__(f"No code for byte 0x{symbol:02x}")
        self.symbol = symbol


class InvalidBitError(HuffmanError):
    def __init__(self, token):
        super().__init__(f"Invalid bit token: {token!r}")
        self.token = token


class ContainerOverflowError(HuffmanError):
    pass


class ContainerError(HuffmanError, ValueError):
    """Повреждённый или обрезанный контейнер."""


class EmptyTableError(ContainerError):
    pass


class TruncatedStreamError(ContainerError):
    pass


class CorruptStreamError(ContainerError):
    pass
