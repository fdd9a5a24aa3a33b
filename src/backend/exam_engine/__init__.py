"""
考试会话引擎
题目池生成、考试会话状态机与评分
"""

__version__ = "0.1.0"
