"""
注释过滤服务
"""

import logging
from typing import Iterable, List

from ..models.ast_models import DEFAULT_DIRECTIVE_PREFIXES, Comment, CommentGroup

logger = logging.getLogger(__name__)


class CommentService:
    """注释过滤服务类

    插入探针后原有的源码偏移会整体移动，普通注释可能被放到语法上不合法的位置，
    所以只保留位于第1列、带指令前缀的注释（如 ``# type:``、``#!``），其余全部丢弃。
    """

    @staticmethod
    def is_directive(
        comment: Comment, prefixes: Iterable[str] = DEFAULT_DIRECTIVE_PREFIXES
    ) -> bool:
        """判断注释是否为指令注释"""
        return comment.column == 1 and comment.text.startswith(tuple(prefixes))

    @staticmethod
    def filter_groups(
        groups: List[CommentGroup],
        prefixes: Iterable[str] = DEFAULT_DIRECTIVE_PREFIXES,
    ) -> List[CommentGroup]:
        """只保留指令注释，过滤后为空的注释组整体丢弃"""
        prefixes = tuple(prefixes)
        result = []
        dropped = 0

        for group in groups:
            kept = [c for c in group.comments if CommentService.is_directive(c, prefixes)]
            dropped += len(group.comments) - len(kept)
            if kept:
                result.append(CommentGroup(comments=kept))

        logger.debug(
            "comment filter: %d groups in, %d groups kept, %d comments dropped",
            len(groups),
            len(result),
            dropped,
        )
        return result
