"""核心转换逻辑: 约束闭包、缓存复用、来源解析与合并"""
