"""
ModKeeper 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, List, Optional

import aiohttp


class ModKeeperError(Exception):
    """ModKeeper 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(ModKeeperError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class InvalidFilenamePatternError(ConfigError):
    """文件名过滤器的正则表达式无法编译"""

    def __init__(self, pattern: str, reason: str):
        super().__init__(
            f"文件名过滤器的正则表达式无效: {pattern!r} ({reason})",
            context={"pattern": pattern, "reason": reason},
        )
        self.pattern = pattern

    def _get_default_code(self) -> str:
        return "E103"


class APIError(ModKeeperError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class APINotFoundError(APIError):
    """API 资源不存在"""

    def _get_default_code(self) -> str:
        return "E404"


class APIRateLimitError(APIError):
    """API 速率限制"""

    def _get_default_code(self) -> str:
        return "E429"


class APIServerError(APIError):
    """API 服务器错误"""

    def _get_default_code(self) -> str:
        return "E500"


class ResolutionError(ModKeeperError):
    """文件解析（选择下载文件）相关错误"""

    def _get_default_code(self) -> str:
        return "E600"


class SelectError(ResolutionError):
    """过滤器无法选出任何文件"""

    def _get_default_code(self) -> str:
        return "E610"


class FilterEmptyError(SelectError):
    """
    一个或多个过滤器单独运行时没有匹配任何文件

    filters 中包含所有结果为空的过滤器名称，而不仅仅是第一个。
    """

    def __init__(self, filters: List[str]):
        super().__init__(
            f"以下过滤器没有匹配到任何文件: {', '.join(filters)}",
            context={"filters": list(filters)},
        )
        self.filters = list(filters)

    def _get_default_code(self) -> str:
        return "E611"


class IntersectFailureError(SelectError):
    """每个过滤器单独都能匹配，但没有文件能同时满足所有过滤器"""

    def __init__(self, message: str = "没有文件能同时满足所有过滤器"):
        super().__init__(message)

    def _get_default_code(self) -> str:
        return "E612"


class DistributionDeniedError(ResolutionError):
    """项目作者禁止第三方程序下载该文件"""

    def __init__(self, mod_id: int, file_id: Optional[int] = None):
        target = f"文件 {file_id}" if file_id is not None else "任何文件"
        super().__init__(
            f"项目 {mod_id} 的作者禁止第三方程序下载{target}",
            context={"mod_id": mod_id, "file_id": file_id},
        )
        self.mod_id = mod_id
        self.file_id = file_id

    def _get_default_code(self) -> str:
        return "E620"


class InvalidPinError(ResolutionError):
    """固定版本的标识符无效"""

    def _get_default_code(self) -> str:
        return "E630"



class MalformedRecordError(ResolutionError):
    """平台返回的记录缺少字段或包含无法识别的值"""

    def __init__(self, platform: str, record_id: Any, reason: str):
        super().__init__(
            f"{platform} 返回的记录 {record_id} 无法解析: {reason}",
            context={"platform": platform, "record_id": record_id, "reason": reason},
        )
        self.platform = platform
        self.record_id = record_id

    def _get_default_code(self) -> str:
        return "E640"


class ProfileError(ModKeeperError):
    """配置档案操作错误"""

    def _get_default_code(self) -> str:
        return "E700"


class ModAlreadyAddedError(ProfileError):
    """模组已存在于配置档案中"""

    def _get_default_code(self) -> str:
        return "E701"


class ModNotFoundError(ProfileError):
    """配置档案中不存在该模组"""

    def _get_default_code(self) -> str:
        return "E702"



class ProjectNotFoundError(ProfileError):
    """平台上不存在要添加的项目"""

    def _get_default_code(self) -> str:
        return "E703"


class NotAModError(ProfileError):
    """要添加的项目不是模组"""

    def _get_default_code(self) -> str:
        return "E704"


class IncompatibleModError(ProfileError):
    """要添加的模组没有与配置档案兼容的文件"""

    def _get_default_code(self) -> str:
        return "E705"


__all__ = [
    # 基础异常
    "ModKeeperError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    "InvalidFilenamePatternError",
    # API 异常
    "APIError",
    "APINotFoundError",
    "APIRateLimitError",
    "APIServerError",
    # 解析异常
    "ResolutionError",
    "SelectError",
    "FilterEmptyError",
    "IntersectFailureError",
    "DistributionDeniedError",
    "InvalidPinError",
    "MalformedRecordError",
    # 配置档案异常
    "ProfileError",
    "ModAlreadyAddedError",
    "ModNotFoundError",
    "ProjectNotFoundError",
    "NotAModError",
    "IncompatibleModError",
]
