"""
函数探针插桩服务 - 主应用
"""

import logging

from flask import Flask
from flask_cors import CORS

from config import get_config
from ..api.controllers import api_bp


def create_app(config_name=None):
    """应用工厂函数"""
    config_class = get_config(config_name)

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    # 启用CORS
    CORS(app)

    # 注册蓝图
    app.register_blueprint(api_bp)

    # 错误处理
    @app.errorhandler(404)
    def not_found(error):
        return {"success": False, "error": "页面未找到"}, 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return {"success": False, "error": "请求方法不允许"}, 405

    @app.errorhandler(500)
    def internal_error(error):
        return {"success": False, "error": "服务器内部错误"}, 500

    return app
