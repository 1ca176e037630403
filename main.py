#!/usr/bin/env python3
"""
函数探针插桩工具启动文件

用法:
    python main.py instrument <file.py>            # 插桩后的代码输出到标准输出
    python main.py instrument <file.py> -o out.py  # 输出到文件
    python main.py functions <file.py>             # 列出所有函数及其位置
    python main.py serve                           # 启动 HTTP API
"""

import argparse
import logging
import sys

from config import config as configs, config_as_dict, get_config
from funcprobe.models.ast_models import ProbeOptions
from funcprobe.services.pipeline_service import PipelineService
from funcprobe.utils.ast_converter import list_functions, parse_source
from funcprobe.utils.errors import InstrumentError, PrintError

logger = logging.getLogger("funcprobe")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="funcprobe",
        description="为 Python 源文件中的每个函数插入入口/出口探针",
    )
    parser.add_argument("--env", default=None, choices=sorted(configs), help="配置名称")
    subparsers = parser.add_subparsers(dest="command", required=True)

    instrument = subparsers.add_parser("instrument", help="插桩并输出源代码")
    instrument.add_argument("file", help="Python 源文件")
    instrument.add_argument("-o", "--output", help="输出文件（默认标准输出）")
    instrument.add_argument(
        "--preserve-docstrings",
        action="store_true",
        help="入口探针放在文档字符串之后",
    )

    functions = subparsers.add_parser("functions", help="列出所有函数及其位置")
    functions.add_argument("file", help="Python 源文件")

    subparsers.add_parser("serve", help="启动 HTTP API")
    return parser


def read_source(path):
    with open(path, "rb") as f:
        return f.read()


def run_instrument(args, options):
    source = read_source(args.file)
    if args.preserve_docstrings:
        options.preserve_docstrings = True
    result = PipelineService.run(source, args.file, options)

    # 按输入文件的编码声明输出，保留下来的编码声明才与实际字节一致
    try:
        data = result.code.encode(result.encoding)
    except UnicodeEncodeError as e:
        raise PrintError(args.file, f"无法按 {result.encoding} 编码输出: {e.reason}") from e

    # 成功后才一次性写出，失败时不产生任何输出
    if args.output:
        with open(args.output, "wb") as f:
            f.write(data)
        logger.info("wrote %s (%s)", args.output, result.encoding)
    else:
        sys.stdout.flush()
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


def run_functions(args):
    tree = parse_source(read_source(args.file), args.file)
    for info in list_functions(tree):
        print(info.describe())


def run_serve(env, config_class):
    from funcprobe.backend.app import create_app

    app = create_app(env)
    print("🌳 函数探针插桩服务正在启动...")
    print(f"访问地址: http://{config_class.HOST}:{config_class.PORT}")
    app.run(host=config_class.HOST, port=config_class.PORT, debug=config_class.DEBUG)


def main(argv=None):
    args = build_parser().parse_args(argv)
    config_class = get_config(args.env)
    settings = config_as_dict(config_class)

    logging.basicConfig(
        level=getattr(logging, settings["LOG_LEVEL"], logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    options = ProbeOptions.from_mapping(settings)

    try:
        if args.command == "instrument":
            run_instrument(args, options)
        elif args.command == "functions":
            run_functions(args)
        else:
            run_serve(args.env, config_class)
    except InstrumentError as e:
        print(f"funcprobe: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"funcprobe: {e.filename or getattr(args, 'file', '')}: {e.strerror or e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
