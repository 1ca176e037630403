"""
函数探针插桩服务
"""

import ast
import copy
import logging
from typing import List, Optional

from ..models.ast_models import (
    FunctionInfo,
    InstrumentResult,
    ProbeOptions,
    SyntaxTree,
)
from ..utils.ast_converter import function_info
from ..utils.errors import InstrumentError

logger = logging.getLogger(__name__)


def is_docstring(stmt: ast.stmt) -> bool:
    """判断语句是否为字符串常量表达式（文档字符串）"""
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def is_stub_body(body: List[ast.stmt]) -> bool:
    """判断函数体是否为空实现。

    Python 中函数体不能真正为空，只由 ``pass``、``...`` 和文档字符串组成的函数体
    视为空函数体，不插入探针。
    """
    for index, stmt in enumerate(body):
        if isinstance(stmt, ast.Pass):
            continue
        if (
            isinstance(stmt, ast.Expr)
            and isinstance(stmt.value, ast.Constant)
            and stmt.value.value is Ellipsis
        ):
            continue
        if index == 0 and is_docstring(stmt):
            continue
        return False
    return True


class ProbeInstrumenter(ast.NodeTransformer):
    """在每个函数体的首尾插入入口/出口探针的转换器。

    工作原理：深度优先遍历整棵语法树（不只是顶层声明），嵌套函数、方法以及
    位于 if/try/with 等语句中的函数都会被访问，并各自获得一对探针：

        def f():                    def f():
            a()          ==>            on_enter('enter f')
            b()                         a()
                                        b()
                                        on_exit('exit f')

    探针是对未解析的标记函数的调用，本转换器只负责生成语法正确的调用语句，
    不定义也不检查这些函数是否存在。末尾是 return/raise 的函数同样会得到出口探针，
    即使运行时执行不到它。
    """

    def __init__(self, options: Optional[ProbeOptions] = None):
        """初始化转换器。

        Args:
            options: 探针名称、标签格式等选项，缺省时使用默认值
        """
        self.options = options or ProbeOptions()
        self.scope: List[str] = []
        self.functions: List[FunctionInfo] = []
        self.probes_added = 0

    def _qualname(self, name: str) -> str:
        return ".".join(self.scope + [name])

    def make_probe(self, probe_name: str, label: str) -> ast.stmt:
        """构造探针语句 ``probe_name("label")``"""
        return ast.Expr(
            value=ast.Call(
                func=ast.Name(id=probe_name, ctx=ast.Load()),
                args=[ast.Constant(value=label)],
                keywords=[],
            )
        )

    @staticmethod
    def _place(probe: ast.stmt, anchor: ast.stmt, at_end: bool) -> ast.stmt:
        """新语句没有源码位置，把它放在相邻语句的位置上"""
        line = anchor.end_lineno if at_end else anchor.lineno
        probe.lineno = line
        probe.end_lineno = line
        probe.col_offset = anchor.col_offset
        probe.end_col_offset = anchor.col_offset
        return ast.fix_missing_locations(probe)

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.AST:
        self.scope.append(node.name)
        self.generic_visit(node)
        self.scope.pop()
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        """访问函数定义节点：先处理嵌套节点，再为本函数插入探针。

        Args:
            node: 函数定义（FunctionDef 或 AsyncFunctionDef）节点

        Returns:
            插入探针后的同一个节点
        """
        qualname = self._qualname(node.name)
        info = function_info(node, qualname)
        self.functions.append(info)

        self.scope.append(node.name)
        self.generic_visit(node)
        self.scope.pop()

        if not node.body or is_stub_body(node.body):
            return node

        head: List[ast.stmt] = []
        body = node.body
        if self.options.preserve_docstrings and is_docstring(body[0]):
            head, body = body[:1], body[1:]
            if not body:
                return node

        enter = self._place(
            self.make_probe(
                self.options.enter_name,
                self.options.enter_label.format(name=qualname),
            ),
            body[0],
            at_end=False,
        )
        exit_ = self._place(
            self.make_probe(
                self.options.exit_name,
                self.options.exit_label.format(name=qualname),
            ),
            body[-1],
            at_end=True,
        )
        node.body = head + [enter] + body + [exit_]

        info.instrumented = True
        self.probes_added += 2
        return node

    visit_AsyncFunctionDef = visit_FunctionDef


class InstrumentService:
    """插桩服务类"""

    @staticmethod
    def instrument(
        tree: SyntaxTree, options: Optional[ProbeOptions] = None
    ) -> InstrumentResult:
        """为语法树中的所有函数插入探针，返回新的语法树，原语法树保持不变"""
        instrumenter = ProbeInstrumenter(options)
        try:
            module = copy.deepcopy(tree.module)
            module = instrumenter.visit(module)
        except RecursionError as e:
            raise InstrumentError(tree.filename, "语法树嵌套过深，无法插桩") from e

        result_tree = SyntaxTree(
            filename=tree.filename,
            source=tree.source,
            module=module,
            comments=list(tree.comments),
            encoding=tree.encoding,
        )
        logger.debug(
            "%s: %d functions visited, %d probes added",
            tree.filename,
            len(instrumenter.functions),
            instrumenter.probes_added,
        )
        return InstrumentResult(
            tree=result_tree,
            functions=instrumenter.functions,
            probes_added=instrumenter.probes_added,
        )
