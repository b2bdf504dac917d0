"""
ModKeeper

管理 Modrinth、CurseForge 与 GitHub 上的模组，并按过滤器为每个模组选出要下载的文件。
"""

__version__ = "0.1.0"

from modkeeper.services.filter_evaluator import evaluate
from modkeeper.services.loader_fallback import select_latest_with_fallback
from modkeeper.services.selector import select_latest

__all__ = [
    "__version__",
    "evaluate",
    "select_latest",
    "select_latest_with_fallback",
]
