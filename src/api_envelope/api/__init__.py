"""路由模块导出集合。"""

from . import articles, auth, health

__all__ = ["articles", "auth", "health"]
