"""
源代码解析工具：源代码 -> 语法树 + 注释组
"""

import ast
import io
import tokenize
from typing import List, Union

from ..models.ast_models import Comment, CommentGroup, FunctionInfo, SyntaxTree
from .errors import InstrumentError, ParseError

FUNCTION_TYPES = (ast.FunctionDef, ast.AsyncFunctionDef)

# 不算作“代码”的记号，它们不会打断一个注释组
_LAYOUT_TOKENS = {
    tokenize.NL,
    tokenize.NEWLINE,
    tokenize.INDENT,
    tokenize.DEDENT,
    tokenize.ENCODING,
    tokenize.ENDMARKER,
}


def source_encoding(source: Union[str, bytes], filename: str = "<string>") -> str:
    """返回输出时应使用的编码：字节输入按 PEP 263 的编码声明，文本输入为 UTF-8"""
    if isinstance(source, str):
        return "utf-8"
    try:
        encoding, _ = tokenize.detect_encoding(io.BytesIO(source).readline)
    except SyntaxError as e:
        raise ParseError(filename, f"无法解码源文件: {e}", line=1) from e
    return encoding


def decode_source(source: Union[str, bytes], filename: str = "<string>") -> str:
    """按 PEP 263 的编码声明把字节解码为文本"""
    if isinstance(source, str):
        return source
    encoding = source_encoding(source, filename)
    try:
        return source.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        raise ParseError(filename, f"无法解码源文件: {e}", line=1) from e


def collect_comment_groups(text: str, filename: str = "<string>") -> List[CommentGroup]:
    """用 tokenize 收集注释，相邻且中间没有代码的注释行归为同一组"""
    groups: List[CommentGroup] = []
    current = None
    last_line = None
    code_since = False

    try:
        for tok in tokenize.generate_tokens(io.StringIO(text).readline):
            if tok.type == tokenize.COMMENT:
                line, col = tok.start
                comment = Comment(text=tok.string, line=line, column=col + 1)
                if current is not None and not code_since and last_line == line - 1:
                    current.comments.append(comment)
                else:
                    current = CommentGroup(comments=[comment])
                    groups.append(current)
                last_line = line
                code_since = False
            elif tok.type not in _LAYOUT_TOKENS:
                code_since = True
    except tokenize.TokenError as e:
        message, (line, col) = e.args
        raise ParseError(filename, message, line=line, column=col + 1) from e
    except SyntaxError as e:
        raise ParseError(filename, e.msg, line=e.lineno, column=e.offset) from e

    return groups


def parse_source(source: Union[str, bytes], filename: str = "<string>") -> SyntaxTree:
    """解析源代码为语法树，并附带注释组"""
    text = decode_source(source, filename)
    try:
        module = ast.parse(text, filename=filename)
    except SyntaxError as e:
        raise ParseError(filename, f"语法错误: {e.msg}", line=e.lineno, column=e.offset) from e
    except ValueError as e:
        # 旧版本解释器对空字节抛出 ValueError
        raise ParseError(filename, f"解析错误: {e}") from e
    except RecursionError as e:
        raise ParseError(filename, "嵌套层次过深，无法解析") from e

    comments = collect_comment_groups(text, filename)
    return SyntaxTree(
        filename=filename,
        source=text,
        module=module,
        comments=comments,
        encoding=source_encoding(source, filename),
    )


class FunctionLister(ast.NodeVisitor):
    """按源码顺序列出所有函数（包括嵌套函数和方法）"""

    def __init__(self):
        self.scope: List[str] = []
        self.functions: List[FunctionInfo] = []

    def _visit_scope(self, node):
        self.scope.append(node.name)
        self.generic_visit(node)
        self.scope.pop()

    def visit_ClassDef(self, node: ast.ClassDef):
        self._visit_scope(node)

    def visit_FunctionDef(self, node: ast.FunctionDef):
        self.functions.append(function_info(node, ".".join(self.scope + [node.name])))
        self._visit_scope(node)

    visit_AsyncFunctionDef = visit_FunctionDef


def function_info(node: ast.AST, qualname: str, instrumented: bool = False) -> FunctionInfo:
    """从函数节点提取位置信息，列号从1开始"""
    return FunctionInfo(
        name=node.name,
        qualname=qualname,
        start_line=node.lineno,
        start_column=node.col_offset + 1,
        end_line=node.end_lineno,
        end_column=node.end_col_offset + 1,
        instrumented=instrumented,
    )


def list_functions(tree: SyntaxTree) -> List[FunctionInfo]:
    """列出语法树中的所有函数声明"""
    lister = FunctionLister()
    try:
        lister.visit(tree.module)
    except RecursionError as e:
        raise InstrumentError(tree.filename, "语法树嵌套过深，无法列出函数") from e
    return lister.functions
