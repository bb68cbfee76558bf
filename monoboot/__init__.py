"""monoboot - 多包仓库（workspace）引导工具

将 workspace 内的兄弟包互相链接，并安装其余外部依赖。
"""

__version__ = "0.3.0"
