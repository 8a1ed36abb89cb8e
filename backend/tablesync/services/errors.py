from __future__ import annotations


class SyncError(Exception):
    pass


class SyncConfigError(SyncError):
    pass


class SyncConnectionError(SyncError):
    pass


class ProbeParseError(SyncError, ValueError):
    pass


class UnsupportedColumnTypeError(SyncConfigError):
    def __init__(self, column: str, type_name: str, label: str) -> None:
        super().__init__(
            f"Unsupported column type '{type_name}' for column '{column}' in job '{label}'"
        )
        self.column = column
        self.type_name = type_name
        self.label = label


class InsertError(SyncError):
    def __init__(self, label: str, row_number: int, statement: str) -> None:
        super().__init__(f"Insert failed for row {row_number} in job '{label}': {statement}")
        self.label = label
        self.row_number = row_number
        self.statement = statement
