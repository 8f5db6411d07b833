"""基础设施层：数据库、持久化、Redis、缓存与任务队列。"""
