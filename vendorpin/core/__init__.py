"""核心: 数据模型、清单、依赖解析与源码快照"""
