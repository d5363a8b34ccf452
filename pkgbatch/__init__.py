"""pkgbatch - 基于 configure/make 的源码包批量安装/卸载工具"""

__version__ = "0.3.0"
