"""
插桩流水线服务：解析 -> 注释过滤 -> 插桩 -> 打印
"""

import logging
from typing import Optional, Union

from ..models.ast_models import PipelineResult, ProbeOptions, SyntaxTree
from ..utils.ast_converter import parse_source
from ..utils.source_printer import print_tree
from .comment_service import CommentService
from .instrument_service import InstrumentService

logger = logging.getLogger(__name__)


class PipelineService:
    """插桩流水线服务类"""

    @staticmethod
    def run(
        source: Union[str, bytes],
        filename: str = "<string>",
        options: Optional[ProbeOptions] = None,
    ) -> PipelineResult:
        """对一份源代码执行完整的插桩流程，出错时直接抛出 ParseError/PrintError"""
        options = options or ProbeOptions()

        parsed = parse_source(source, filename)
        logger.debug(
            "%s: parsed %d statements, %d comment groups",
            filename,
            len(parsed.module.body),
            len(parsed.comments),
        )

        comments = CommentService.filter_groups(parsed.comments, options.directive_prefixes)
        filtered = SyntaxTree(
            filename=parsed.filename,
            source=parsed.source,
            module=parsed.module,
            comments=comments,
            encoding=parsed.encoding,
        )

        result = InstrumentService.instrument(filtered, options)
        code = print_tree(result.tree, verify=options.verify_output)

        logger.info(
            "%s: instrumented %d of %d functions (%d probes)",
            filename,
            sum(1 for f in result.functions if f.instrumented),
            len(result.functions),
            result.probes_added,
        )
        return PipelineResult(
            filename=filename,
            code=code,
            functions=result.functions,
            probes_added=result.probes_added,
            comments_kept=sum(len(g.comments) for g in comments),
            encoding=result.tree.encoding,
        )

    @staticmethod
    def instrument_source(
        source: Union[str, bytes],
        filename: str = "<string>",
        options: Optional[ProbeOptions] = None,
    ) -> str:
        """只返回插桩后的代码"""
        return PipelineService.run(source, filename, options).code
