"""
语法树打印工具：语法树 + 指令注释 -> 格式化源代码
"""

import ast
import copy
import re
from typing import List, Optional, Tuple

from ..models.ast_models import CommentGroup, SyntaxTree
from .errors import PrintError

PLACEHOLDER_PREFIX = "__funcprobe_directive_"
_PLACEHOLDER_RE = re.compile(r"^[ \t]*" + PLACEHOLDER_PREFIX + r"(\d+)__$")

# 这些节点的 body 第一条语句是文档字符串
_DOCSTRING_OWNERS = (ast.Module, ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)


def _start_line(stmt: ast.stmt) -> int:
    # 装饰器在 def/class 行之前
    decorators = getattr(stmt, "decorator_list", None) or []
    return min([stmt.lineno] + [d.lineno for d in decorators])


def _statement_lists(stmt: ast.stmt) -> List[Tuple[ast.AST, str, list]]:
    """按源码顺序返回复合语句包含的语句列表 (所属节点, 字段名, 列表)"""
    result = []
    for name, value in ast.iter_fields(stmt):
        if not isinstance(value, list) or not value:
            continue
        if isinstance(value[0], ast.stmt):
            result.append((stmt, name, value))
        elif isinstance(value[0], (ast.excepthandler, ast.match_case)):
            for item in value:
                if item.body:
                    result.append((item, "body", item.body))
    return result


def _end_line(body: list) -> int:
    return max((s.end_lineno for s in body if hasattr(s, "end_lineno")), default=0)


def _is_leading_docstring(owner: ast.AST, field: str, body: list) -> bool:
    return (
        isinstance(owner, _DOCSTRING_OWNERS)
        and field == "body"
        and isinstance(body[0], ast.Expr)
        and isinstance(body[0].value, ast.Constant)
        and isinstance(body[0].value.value, str)
    )


def _insert_placeholder(owner: ast.AST, field: str, body: list, line: int, stmt: ast.stmt):
    """把占位语句插入到包含该行的最内层语句列表中"""
    index = len(body)
    for i, child in enumerate(body):
        if not hasattr(child, "lineno"):
            continue
        if _start_line(child) > line:
            index = i
            break
        if line <= child.end_lineno:
            nested = _statement_lists(child)
            if nested:
                for n_owner, n_field, n_body in nested:
                    if _end_line(n_body) >= line:
                        _insert_placeholder(n_owner, n_field, n_body, line, stmt)
                        return
                n_owner, n_field, n_body = nested[-1]
                _insert_placeholder(n_owner, n_field, n_body, line, stmt)
                return

    if index == 0 and body and _is_leading_docstring(owner, field, body):
        index = 1
    body.insert(index, stmt)


def validate_tree(tree: SyntaxTree):
    """检查语法树结构，语句列表中只能出现语句节点"""
    if not isinstance(tree.module, ast.Module):
        raise PrintError(
            tree.filename, "根节点必须是 Module", type(tree.module).__name__
        )
    for node in ast.walk(tree.module):
        for name, value in ast.iter_fields(node):
            if not isinstance(value, list) or name not in ("body", "orelse", "finalbody"):
                continue
            for item in value:
                if not isinstance(item, ast.stmt):
                    raise PrintError(
                        tree.filename,
                        f"{type(node).__name__}.{name} 中包含无法打印的节点",
                        type(item).__name__,
                    )


def _split_header(
    module: ast.Module, groups: List[CommentGroup]
) -> Tuple[List[CommentGroup], List[CommentGroup]]:
    """第一条语句之前的注释组（如 #! 和编码声明）原样放在文件开头"""
    first = None
    for stmt in module.body:
        if hasattr(stmt, "lineno"):
            first = _start_line(stmt)
            break
    header = [g for g in groups if first is None or g.end_line < first]
    rest = [g for g in groups if first is not None and g.end_line >= first]
    return header, rest


def print_tree(tree: SyntaxTree, verify: bool = True) -> str:
    """将语法树打印为格式化的源代码，并放回保留下来的指令注释"""
    validate_tree(tree)

    try:
        module = copy.deepcopy(tree.module)
    except RecursionError as e:
        raise PrintError(tree.filename, "语法树嵌套过深，无法打印") from e
    header, rest = _split_header(module, tree.comments)

    for i, group in enumerate(rest):
        placeholder = ast.Expr(
            value=ast.Name(id=f"{PLACEHOLDER_PREFIX}{i}__", ctx=ast.Load())
        )
        _insert_placeholder(module, "body", module.body, group.start_line, placeholder)

    try:
        code = ast.unparse(module)
    except (AttributeError, TypeError, ValueError, RecursionError) as e:
        raise PrintError(tree.filename, f"代码生成错误: {e}") from e

    lines = []
    source_lines = code.split("\n")
    skipped = set()
    for i, line in enumerate(source_lines):
        if i in skipped:
            continue
        match = _PLACEHOLDER_RE.match(line)
        if not match:
            lines.append(line)
            continue
        # unparse 在 def/class 前加的空行挪到这一串注释之前，让注释紧贴它所在的声明
        if i == 0 or not _PLACEHOLDER_RE.match(source_lines[i - 1]):
            j = i + 1
            while j < len(source_lines) and _PLACEHOLDER_RE.match(source_lines[j]):
                j += 1
            if j < len(source_lines) and not source_lines[j]:
                lines.append("")
                skipped.add(j)
        lines.extend(c.text for c in rest[int(match.group(1))].comments)

    head_lines = [c.text for g in header for c in g.comments]
    body_text = "\n".join(lines) if code else ""
    output = "\n".join(head_lines + ([body_text] if body_text else []))
    if output:
        output += "\n"

    if verify:
        verify_output(output, tree.filename)
    return output


def verify_output(code: str, filename: Optional[str] = "<output>"):
    """重新解析输出，确保生成的代码语法正确"""
    try:
        ast.parse(code, filename=filename)
    except (SyntaxError, ValueError, RecursionError) as e:
        raise PrintError(filename, f"生成的代码无法解析: {e}") from e
