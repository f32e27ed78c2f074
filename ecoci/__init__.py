"""ecosystem-ci - 下游生态兼容性回归"""

__version__ = "0.1.0"
