"""
领域规则：记录状态机、资源字段映射、租户设置。
不依赖任何基础设施。
"""
