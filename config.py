"""
应用配置文件
"""

import os

from funcprobe.models.ast_models import DEFAULT_DIRECTIVE_PREFIXES


class Config:
    """基础配置"""

    DEBUG = False
    HOST = "127.0.0.1"
    PORT = 5001
    LOG_LEVEL = os.environ.get("FUNCPROBE_LOG_LEVEL") or "INFO"

    # 安全配置
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"

    # 输入限制
    MAX_CODE_LENGTH = 200000  # 字符

    # 探针配置
    ENTER_PROBE = "on_enter"
    EXIT_PROBE = "on_exit"
    ENTER_LABEL = "enter {name}"
    EXIT_LABEL = "exit {name}"
    PRESERVE_DOCSTRINGS = False

    # 注释过滤配置
    DIRECTIVE_PREFIXES = DEFAULT_DIRECTIVE_PREFIXES

    # 打印后重新解析输出
    VERIFY_OUTPUT = True


class DevelopmentConfig(Config):
    """开发环境配置"""

    DEBUG = True
    LOG_LEVEL = os.environ.get("FUNCPROBE_LOG_LEVEL") or "DEBUG"


class ProductionConfig(Config):
    """生产环境配置"""

    DEBUG = False

    # 生产环境中的输入限制
    MAX_CODE_LENGTH = 100000  # 更短的代码长度限制


class TestingConfig(Config):
    """测试环境配置"""

    TESTING = True
    DEBUG = True
    LOG_LEVEL = "WARNING"


# 配置字典
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config(name=None):
    """按名称获取配置类，未指定时读取 FUNCPROBE_ENV 环境变量"""
    name = name or os.environ.get("FUNCPROBE_ENV") or "default"
    if name not in config:
        raise KeyError(f"未知配置: {name}")
    return config[name]


def config_as_dict(config_class):
    """把配置类的大写属性转换为字典"""
    return {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}
