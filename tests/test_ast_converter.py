"""
源代码解析测试
"""

import unittest
import sys
import os

# 添加项目根目录到Python路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import ast
from unittest import mock

from funcprobe.utils.ast_converter import (
    FunctionLister,
    collect_comment_groups,
    list_functions,
    parse_source,
    source_encoding,
)
from funcprobe.utils.errors import InstrumentError, ParseError


class TestParseSource(unittest.TestCase):
    """解析器测试类"""

    def test_simple_function_parsing(self):
        """测试简单函数解析"""
        code = """
def hello_world():
    print("Hello, World!")
"""
        tree = parse_source(code, "hello.py")

        self.assertEqual(tree.filename, "hello.py")
        self.assertIsInstance(tree.module, ast.Module)
        self.assertEqual(len(tree.module.body), 1)

        func_def = tree.module.body[0]
        self.assertIsInstance(func_def, ast.FunctionDef)
        self.assertEqual(func_def.name, "hello_world")
        self.assertEqual(func_def.lineno, 2)
        self.assertEqual(tree.blocks, [])

    def test_bytes_with_encoding_declaration(self):
        """测试按编码声明解码字节输入"""
        code = "# -*- coding: latin-1 -*-\ns = '\xe9'\n".encode("latin-1")
        tree = parse_source(code, "latin.py")

        self.assertIn("\xe9", tree.source)
        self.assertEqual(tree.module.body[0].value.value, "\xe9")

    def test_syntax_error_handling(self):
        """测试语法错误处理"""
        with self.assertRaises(ParseError) as ctx:
            parse_source("def invalid_function(:\n    pass\n", "bad.py")

        error = ctx.exception
        self.assertEqual(error.filename, "bad.py")
        self.assertEqual(error.line, 1)
        self.assertTrue(str(error).startswith("bad.py:1"))

    def test_unbalanced_brackets(self):
        """测试括号不匹配时报告文件名和行号"""
        with self.assertRaises(ParseError) as ctx:
            parse_source("def f():\n    g(1, 2\n", "broken.py")

        self.assertEqual(ctx.exception.filename, "broken.py")
        self.assertIsNotNone(ctx.exception.line)
        self.assertIn("broken.py:", str(ctx.exception))

    def test_parse_error_is_value_error(self):
        """ParseError 仍然是 ValueError 的子类"""
        with self.assertRaises(ValueError):
            parse_source("x = = 1\n")

    def test_source_encoding(self):
        """测试记录输入的编码，文本输入按 UTF-8"""
        latin = parse_source("# -*- coding: latin-1 -*-\nx = 1\n".encode("latin-1"))
        self.assertEqual(latin.encoding, "iso-8859-1")
        self.assertEqual(parse_source(b"x = 1\n").encoding, "utf-8")
        self.assertEqual(parse_source("x = 1\n").encoding, "utf-8")
        self.assertEqual(source_encoding(b"\xef\xbb\xbfx = 1\n"), "utf-8-sig")

    def test_unknown_encoding(self):
        with self.assertRaises(ParseError):
            parse_source(b"# -*- coding: no-such-codec -*-\nx = 1\n", "odd.py")

    def test_recursion_error_becomes_parse_error(self):
        with mock.patch(
            "funcprobe.utils.ast_converter.ast.parse", side_effect=RecursionError
        ):
            with self.assertRaises(ParseError) as ctx:
                parse_source("x = 1\n", "deep.py")
        self.assertEqual(ctx.exception.filename, "deep.py")


class TestCommentGroups(unittest.TestCase):
    """注释组收集测试类"""

    def test_groups_split_by_code_and_blank_lines(self):
        code = (
            "# a\n"
            "# b\n"
            "x = 1  # c\n"
            "# d\n"
            "\n"
            "# e\n"
            "def f():\n"
            "    pass\n"
        )
        groups = collect_comment_groups(code)

        self.assertEqual(len(groups), 3)
        self.assertEqual([c.text for c in groups[0].comments], ["# a", "# b"])
        self.assertEqual([c.text for c in groups[1].comments], ["# c", "# d"])
        self.assertEqual([c.text for c in groups[2].comments], ["# e"])

    def test_comment_positions(self):
        groups = collect_comment_groups("x = 1  # trailing\n    # indented\n#top\n")

        trailing = groups[0].comments[0]
        self.assertEqual((trailing.line, trailing.column), (1, 8))
        self.assertEqual(groups[0].comments[1].column, 5)
        self.assertEqual(groups[0].comments[2].column, 1)
        self.assertEqual(groups[0].start_line, 1)
        self.assertEqual(groups[0].end_line, 3)

    def test_parse_source_attaches_comments(self):
        tree = parse_source("#!/usr/bin/env python\nimport os\n")
        self.assertEqual(len(tree.comments), 1)
        self.assertEqual(tree.comments[0].text, "#!/usr/bin/env python")

    def test_no_comments(self):
        self.assertEqual(collect_comment_groups("x = '# not a comment'\n"), [])


class TestListFunctions(unittest.TestCase):
    """函数列表测试类"""

    def test_nested_qualnames(self):
        code = """
class C:
    def m(self):
        def inner():
            return 1
        return inner()

async def g():
    await h()
"""
        functions = list_functions(parse_source(code))

        self.assertEqual(
            [f.qualname for f in functions], ["C.m", "C.m.inner", "g"]
        )
        self.assertEqual([f.name for f in functions], ["m", "inner", "g"])

    def test_positions_are_one_based(self):
        functions = list_functions(parse_source("class C:\n    def m(self):\n        pass\n"))

        info = functions[0]
        self.assertEqual((info.start_line, info.start_column), (2, 5))
        self.assertEqual(info.end_line, 3)
        self.assertEqual(info.end_column, 13)
        self.assertFalse(info.instrumented)
        self.assertEqual(info.describe(), "name: C.m start: 2:5 end: 3:13")

    def test_deep_tree_raises_instrument_error(self):
        tree = parse_source("def f():\n    pass\n", "deep.py")
        with mock.patch.object(
            FunctionLister, "generic_visit", side_effect=RecursionError
        ):
            with self.assertRaises(InstrumentError) as ctx:
                list_functions(tree)
        self.assertEqual(ctx.exception.filename, "deep.py")


if __name__ == "__main__":
    unittest.main()
