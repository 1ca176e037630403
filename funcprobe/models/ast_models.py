"""
插桩数据模型定义
"""

import ast
from typing import Any, Dict, List, Mapping, Tuple
from dataclasses import dataclass, field


# 默认的探针函数名与标签格式，{name} 会被替换为函数的限定名
DEFAULT_ENTER_NAME = "on_enter"
DEFAULT_EXIT_NAME = "on_exit"
DEFAULT_ENTER_LABEL = "enter {name}"
DEFAULT_EXIT_LABEL = "exit {name}"

# 位于第1列、以这些前缀开头的注释才会被保留
DEFAULT_DIRECTIVE_PREFIXES = (
    "#!",
    "# -*-",
    "# vim:",
    "# type:",
    "# mypy:",
    "# pyright:",
    "# pragma:",
    "#pragma:",
    "# fmt:",
    "# isort:",
    "# flake8:",
    "# ruff:",
    "# pylint:",
)


@dataclass
class Comment:
    """单条注释，line/column 均从1开始"""

    text: str
    line: int
    column: int


@dataclass
class CommentGroup:
    """连续的注释行组成的注释组"""

    comments: List[Comment] = field(default_factory=list)

    @property
    def start_line(self) -> int:
        return self.comments[0].line

    @property
    def end_line(self) -> int:
        return self.comments[-1].line

    @property
    def text(self) -> str:
        return "\n".join(c.text for c in self.comments)


@dataclass
class Block:
    """基本块信息（预留给将来的覆盖率统计，目前没有任何行为使用它）"""

    start: Tuple[int, int]
    end: Tuple[int, int]
    num_stmt: int


@dataclass
class SyntaxTree:
    """一次流水线运行所持有的语法树"""

    filename: str
    source: str
    module: ast.Module
    comments: List[CommentGroup] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    # 输出时使用的编码，与输入的编码声明一致
    encoding: str = "utf-8"


@dataclass
class FunctionInfo:
    """函数声明的位置信息"""

    name: str
    qualname: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    instrumented: bool = False

    def describe(self) -> str:
        return (
            f"name: {self.qualname} "
            f"start: {self.start_line}:{self.start_column} "
            f"end: {self.end_line}:{self.end_column}"
        )


@dataclass
class ProbeOptions:
    """探针与注释过滤的配置"""

    enter_name: str = DEFAULT_ENTER_NAME
    exit_name: str = DEFAULT_EXIT_NAME
    enter_label: str = DEFAULT_ENTER_LABEL
    exit_label: str = DEFAULT_EXIT_LABEL
    directive_prefixes: Tuple[str, ...] = DEFAULT_DIRECTIVE_PREFIXES
    preserve_docstrings: bool = False
    verify_output: bool = True

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ProbeOptions":
        """从配置字典（或 Flask 的 app.config）构造选项"""
        return cls(
            enter_name=mapping.get("ENTER_PROBE", DEFAULT_ENTER_NAME),
            exit_name=mapping.get("EXIT_PROBE", DEFAULT_EXIT_NAME),
            enter_label=mapping.get("ENTER_LABEL", DEFAULT_ENTER_LABEL),
            exit_label=mapping.get("EXIT_LABEL", DEFAULT_EXIT_LABEL),
            directive_prefixes=tuple(
                mapping.get("DIRECTIVE_PREFIXES", DEFAULT_DIRECTIVE_PREFIXES)
            ),
            preserve_docstrings=bool(mapping.get("PRESERVE_DOCSTRINGS", False)),
            verify_output=bool(mapping.get("VERIFY_OUTPUT", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enter_name": self.enter_name,
            "exit_name": self.exit_name,
            "enter_label": self.enter_label,
            "exit_label": self.exit_label,
            "directive_prefixes": list(self.directive_prefixes),
            "preserve_docstrings": self.preserve_docstrings,
            "verify_output": self.verify_output,
        }


@dataclass
class InstrumentResult:
    """插桩结果"""

    tree: SyntaxTree
    functions: List[FunctionInfo]
    probes_added: int = 0


@dataclass
class PipelineResult:
    """完整流水线的输出"""

    filename: str
    code: str
    functions: List[FunctionInfo]
    probes_added: int = 0
    comments_kept: int = 0
    encoding: str = "utf-8"
