"""
HTTP API 测试
"""

import unittest
import sys
import os

# 添加项目根目录到Python路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from funcprobe.backend.app import create_app


class TestInstrumentAPI(unittest.TestCase):
    """插桩接口测试类"""

    def setUp(self):
        self.app = create_app("testing")
        self.client = self.app.test_client()

    def test_instrument(self):
        response = self.client.post(
            "/api/instrument",
            json={"code": "def F():\n    a()\n", "filename": "f.py"},
        )
        data = response.get_json()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(data["success"])
        self.assertIn("on_enter('enter F')", data["code"])
        self.assertEqual(data["probes_added"], 2)
        self.assertEqual(data["functions"][0]["qualname"], "F")
        self.assertTrue(data["functions"][0]["instrumented"])

    def test_preserve_docstrings_flag(self):
        response = self.client.post(
            "/api/instrument",
            json={"code": 'def F():\n    """Doc."""\n    a()\n', "preserve_docstrings": True},
        )
        lines = response.get_json()["code"].splitlines()

        self.assertEqual(lines[1], '    """Doc."""')
        self.assertEqual(lines[2], "    on_enter('enter F')")

    def test_preserve_docstrings_false_string(self):
        response = self.client.post(
            "/api/instrument",
            json={"code": 'def F():\n    """Doc."""\n    a()\n', "preserve_docstrings": "false"},
        )
        lines = response.get_json()["code"].splitlines()

        self.assertEqual(lines[1], "    on_enter('enter F')")

    def test_non_object_body(self):
        """测试请求体不是 JSON 对象时返回 400"""
        for body in (["def f():\n    pass\n"], "def f(): pass", 3):
            response = self.client.post("/api/instrument", json=body)
            self.assertEqual(response.status_code, 400)
            self.assertFalse(response.get_json()["success"])

        response = self.client.post("/api/functions", json=[1, 2])
        self.assertEqual(response.status_code, 400)

    def test_parse_error(self):
        response = self.client.post(
            "/api/instrument",
            json={"code": "def f():\n    g(1, 2\n", "filename": "broken.py"},
        )
        data = response.get_json()

        self.assertEqual(response.status_code, 400)
        self.assertFalse(data["success"])
        self.assertEqual(data["file"], "broken.py")
        self.assertIsNotNone(data["line"])
        self.assertNotIn("code", data)

    def test_empty_code(self):
        response = self.client.post("/api/instrument", json={"code": "   "})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()["success"])

    def test_missing_body(self):
        response = self.client.post("/api/instrument")
        self.assertEqual(response.status_code, 400)

    def test_code_too_long(self):
        self.app.config["MAX_CODE_LENGTH"] = 10
        response = self.client.post("/api/instrument", json={"code": "x = 1\n" * 10})
        self.assertEqual(response.status_code, 413)


class TestOtherAPI(unittest.TestCase):
    """其他接口测试类"""

    def setUp(self):
        self.app = create_app("testing")
        self.client = self.app.test_client()

    def test_functions(self):
        response = self.client.post(
            "/api/functions",
            json={"code": "class C:\n    def m(self):\n        pass\n"},
        )
        data = response.get_json()

        self.assertTrue(data["success"])
        self.assertEqual(len(data["functions"]), 1)
        self.assertEqual(data["functions"][0]["qualname"], "C.m")
        self.assertEqual(data["functions"][0]["start_line"], 2)

    def test_functions_parse_error(self):
        response = self.client.post("/api/functions", json={"code": "def (:\n"})
        self.assertEqual(response.status_code, 400)

    def test_validate(self):
        valid = self.client.post("/api/validate", json={"code": "x = 1\n"}).get_json()
        invalid = self.client.post("/api/validate", json={"code": "x = = 1\n"}).get_json()

        self.assertTrue(valid["valid"])
        self.assertFalse(invalid["valid"])
        self.assertIn("<request>:1", invalid["message"])

    def test_options(self):
        data = self.client.get("/api/options").get_json()

        self.assertTrue(data["success"])
        self.assertEqual(data["options"]["enter_name"], "on_enter")
        self.assertIn("# type:", data["options"]["directive_prefixes"])

    def test_not_found(self):
        response = self.client.get("/api/nothing")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.get_json()["success"])

    def test_cors_headers(self):
        response = self.client.get("/api/options", headers={"Origin": "http://example.com"})
        self.assertIn(
            response.headers.get("Access-Control-Allow-Origin"), ("*", "http://example.com")
        )


if __name__ == "__main__":
    unittest.main()
