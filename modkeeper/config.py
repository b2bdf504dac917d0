"""
配置文件读写

根据扩展名支持 JSON、TOML 与 YAML。默认位置为 ~/.config/modkeeper/config.json，
可通过 MODKEEPER_CONFIG 环境变量覆盖。
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import aiofiles
import toml
import yaml
from loguru import logger

from modkeeper.exceptions import ConfigError, ConfigParseError
from modkeeper.models import Config

PathLike = Union[str, Path]


def default_config_path() -> Path:
    env = os.environ.get("MODKEEPER_CONFIG")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".config" / "modkeeper" / "config.json"


def _format_of(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".toml":
        return "toml"
    elif suffix == ".json":
        return "json"
    elif suffix in (".yaml", ".yml"):
        return "yaml"
    raise ConfigError(f"不支持的配置文件格式: {suffix}")


def parse_config(text: str, fmt: str) -> Config:
    """
    解析配置文本

    Raises:
        ConfigParseError: 文本无法解析
        ConfigValidationError: 结构不符合要求
    """
    try:
        if fmt == "toml":
            data = toml.loads(text)
        elif fmt == "json":
            data = json.loads(text) if text.strip() else {}
        else:
            data = yaml.safe_load(text) or {}
    except (toml.TomlDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(f"配置文件解析失败: {e}") from e
    return Config.from_dict(data)


def dump_config(config: Config, fmt: str) -> str:
    data: Dict[str, Any] = config.to_dict()
    if fmt == "toml":
        return toml.dumps(data)
    elif fmt == "json":
        return json.dumps(data, indent=2, ensure_ascii=False)
    return yaml.safe_dump(data, allow_unicode=True, sort_keys=False)


def load_config(path: Optional[PathLike] = None) -> Config:
    """同步加载配置，默认路径下的文件不存在时返回空配置"""
    config_path = Path(path) if path else default_config_path()
    fmt = _format_of(config_path)
    if not config_path.exists():
        if path is None:
            logger.debug(f"配置文件 {config_path} 不存在，使用空配置")
            return Config()
        raise ConfigError(f"配置文件不存在: {config_path}")
    return parse_config(config_path.read_text(encoding="utf-8"), fmt)


async def read_config(path: Optional[PathLike] = None) -> Config:
    """异步加载配置"""
    config_path = Path(path) if path else default_config_path()
    fmt = _format_of(config_path)
    if not config_path.exists():
        if path is None:
            return Config()
        raise ConfigError(f"配置文件不存在: {config_path}")
    async with aiofiles.open(config_path, encoding="utf-8") as cfg_file:
        return parse_config(await cfg_file.read(), fmt)


async def write_config(config: Config, path: Optional[PathLike] = None) -> Path:
    """异步写入配置，必要时创建父目录"""
    config_path = Path(path) if path else default_config_path()
    text = dump_config(config, _format_of(config_path))
    config_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(config_path, "w", encoding="utf-8") as cfg_file:
        await cfg_file.write(text)
    logger.debug(f"配置已写入 {config_path}")
    return config_path
