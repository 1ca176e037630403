"""
API控制器
"""

import dataclasses

from flask import Blueprint, current_app, request, jsonify

from ..models.ast_models import ProbeOptions
from ..services.pipeline_service import PipelineService
from ..utils.ast_converter import list_functions, parse_source
from ..utils.errors import InstrumentError, ParseError


# 创建蓝图
api_bp = Blueprint("api", __name__, url_prefix="/api")


def _read_code():
    """读取请求中的代码，返回 (代码, 文件名, 错误响应)"""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return None, "<request>", (jsonify({"success": False, "error": "请求体必须是 JSON 对象"}), 400)

    code = data.get("code", "")
    filename = data.get("filename") or "<request>"

    if not isinstance(code, str) or not code.strip():
        return None, filename, (jsonify({"success": False, "error": "代码不能为空"}), 400)

    limit = current_app.config.get("MAX_CODE_LENGTH")
    if limit and len(code) > limit:
        return (
            None,
            filename,
            (jsonify({"success": False, "error": f"代码长度超过限制 ({limit} 字符)"}), 413),
        )
    return code, filename, None


def _as_bool(value) -> bool:
    # 表单或查询参数风格的 "false"/"0" 也按假处理
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _options(overrides=None) -> ProbeOptions:
    options = ProbeOptions.from_mapping(current_app.config)
    if overrides and "preserve_docstrings" in overrides:
        options.preserve_docstrings = _as_bool(overrides["preserve_docstrings"])
    return options


def _error_response(error: InstrumentError):
    current_app.logger.warning("instrumentation failed: %s", error)
    body = {"success": False}
    body.update(error.to_dict())
    return jsonify(body), 400


@api_bp.route("/instrument", methods=["POST"])
def instrument_code():
    """为代码中的所有函数插入探针"""
    code, filename, error = _read_code()
    if error:
        return error

    try:
        result = PipelineService.run(
            code, filename, _options(request.get_json(silent=True))
        )
    except InstrumentError as e:
        return _error_response(e)

    return jsonify(
        {
            "success": True,
            "code": result.code,
            "functions": [dataclasses.asdict(f) for f in result.functions],
            "probes_added": result.probes_added,
        }
    )


@api_bp.route("/functions", methods=["POST"])
def get_functions():
    """列出代码中的所有函数及其位置"""
    code, filename, error = _read_code()
    if error:
        return error

    try:
        functions = list_functions(parse_source(code, filename))
    except InstrumentError as e:
        return _error_response(e)

    return jsonify(
        {"success": True, "functions": [dataclasses.asdict(f) for f in functions]}
    )


@api_bp.route("/validate", methods=["POST"])
def validate_code():
    """验证代码语法"""
    code, filename, error = _read_code()
    if error:
        return error

    try:
        parse_source(code, filename)
    except ParseError as e:
        return jsonify({"success": True, "valid": False, "message": str(e)})

    return jsonify({"success": True, "valid": True, "message": "代码语法正确"})


@api_bp.route("/options", methods=["GET"])
def get_options():
    """获取当前的探针配置"""
    return jsonify({"success": True, "options": _options().to_dict()})
