"""
插桩过程中的错误类型
"""

from typing import Optional


class InstrumentError(Exception):
    """所有插桩错误的基类"""

    def __init__(self, filename: str, message: str):
        super().__init__(message)
        self.filename = filename
        self.message = message

    def __str__(self) -> str:
        return f"{self.filename}: {self.message}"

    def to_dict(self) -> dict:
        return {"error": str(self), "file": self.filename}


class ParseError(InstrumentError, ValueError):
    """输入不符合 Python 语法"""

    def __init__(
        self,
        filename: str,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(filename, message)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        location = self.filename
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return f"{location}: {self.message}"

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["line"] = self.line
        result["column"] = self.column
        return result


class PrintError(InstrumentError, ValueError):
    """修改后的语法树无法被序列化"""

    def __init__(self, filename: str, message: str, node_type: Optional[str] = None):
        super().__init__(filename, message)
        self.node_type = node_type

    def __str__(self) -> str:
        if self.node_type:
            return f"{self.filename}: {self.message} ({self.node_type})"
        return f"{self.filename}: {self.message}"

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["node_type"] = self.node_type
        return result
