"""工作流编排服务"""
