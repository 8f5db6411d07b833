"""
LingoSync Server：多租户电商目录翻译编排服务。
"""

__version__ = "0.1.0"
