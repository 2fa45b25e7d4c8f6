"""LangGraph node implementations: one module per node.

Every node takes the current ``RunState`` (plus the collaborators it needs)
and returns a state update that always includes ``next_node``.
"""

# -- Node functions --------------------------------------------------------

from .classifier import classifier_node  # noqa: F401
from .bash import bash_node  # noqa: F401
from .validation import validation_node  # noqa: F401
from .formatter import formatter_node  # noqa: F401
from .content_collection import content_collection_node  # noqa: F401
from .analytics import analytics_node  # noqa: F401
from .direct_response import direct_response_node  # noqa: F401
from .code_analyzer import code_analyzer_node  # noqa: F401

# -- Helpers re-exported for tests ----------------------------------------

from ._helpers import _clean_command, _parse_json_object  # noqa: F401
from .validation import CANCELLED_MESSAGE, assess_command, suggest_alternative  # noqa: F401
from .analytics import _prepare_directory_info  # noqa: F401

__all__ = [
    "analytics_node",
    "bash_node",
    "classifier_node",
    "code_analyzer_node",
    "content_collection_node",
    "direct_response_node",
    "formatter_node",
    "validation_node",
]
