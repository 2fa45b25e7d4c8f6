"""Content-collection node: gathers the directory listing for analytics."""

from __future__ import annotations

from typing import Any

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.state import NodeType, RunState
from app.tools.filesystem import collect_directory_contents

logger = get_logger("core.nodes.content_collection")


def content_collection_node(state: RunState) -> dict[str, Any]:
    settings = get_settings()
    count_limit = state.file_count_limit or settings.file_count_limit
    size_limit = state.file_size_limit or settings.file_size_limit

    logger.info(
        "Collecting %s | bodies=%s | patterns=%s",
        state.working_directory,
        state.needs_file_content,
        state.file_patterns or "*",
    )
    entries = collect_directory_contents(
        state.working_directory,
        patterns=state.file_patterns,
        read_contents=state.needs_file_content,
        max_entries=count_limit,
        max_file_size=size_limit,
    )
    return {
        "directory_contents": entries,
        "file_count_limit": count_limit,
        "file_size_limit": size_limit,
        "next_node": NodeType.ANALYTICS,
    }
