"""vendorpin - 依赖源码锁定与 vendor 工具"""

__version__ = "0.3.0"
