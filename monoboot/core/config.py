"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 命令行覆盖。
lerna.json 同样可以直接加载：其 linkedFiles.prefix / bootstrapConfig.ignore
嵌套键会映射到对应字段。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from monoboot.core.exceptions import ConfigError
from monoboot.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "monoboot.yml"


@dataclass(frozen=True)
class Config:
    """workspace 全局配置"""

    # 包发现
    packages: list[str] = field(default_factory=lambda: ["packages/*"])
    ignore: str = ""

    # 执行
    concurrency: int = 4

    # 链接
    link_file_prefix: str = ""
    source_extensions: list[str] = field(default_factory=lambda: [".js"])

    # 外部安装
    npm_client: str = "npm"
    npm_client_args: list[str] = field(default_factory=list)

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML / JSON 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, OSError, ValueError) as e:
            raise ConfigError(f"无法加载配置文件 {path}: {e}") from e
        if not data:
            return cls()

        data = dict(data)
        linked = data.pop("linkedFiles", None)
        if isinstance(linked, dict) and "prefix" in linked:
            data.setdefault("link_file_prefix", linked["prefix"])
        bootstrap_cfg = data.pop("bootstrapConfig", None)
        if isinstance(bootstrap_cfg, dict) and "ignore" in bootstrap_cfg:
            data.setdefault("ignore", bootstrap_cfg["ignore"])

        known = {f.name for f in fields(cls)} - {"extra"}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched, extra=extra)
        except TypeError as e:
            raise ConfigError(f"配置文件 {path} 内容无效: {e}") from e
        cfg.validate()
        logger.info("配置已加载: %s", path)
        return cfg

    def with_overrides(self, **overrides: Any) -> Config:
        """返回应用了非 None 覆盖项的新配置（用于命令行参数）"""
        cfg = replace(self, **{k: v for k, v in overrides.items() if v is not None})
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """校验字段类型与取值，失败抛 ConfigError"""
        errors: list[str] = []
        if not isinstance(self.concurrency, int) or isinstance(self.concurrency, bool) \
                or self.concurrency < 1:
            errors.append(f"concurrency 必须为正整数: {self.concurrency!r}")
        for name in ("packages", "source_extensions", "npm_client_args"):
            value = getattr(self, name)
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                errors.append(f"{name} 必须为字符串列表: {value!r}")
        for name in ("ignore", "link_file_prefix", "npm_client"):
            if not isinstance(getattr(self, name), str):
                errors.append(f"{name} 必须为字符串: {getattr(self, name)!r}")
        if not self.npm_client:
            errors.append("npm_client 不能为空")
        if errors:
            raise ConfigError("; ".join(errors))
