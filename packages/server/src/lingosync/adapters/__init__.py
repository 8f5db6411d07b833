"""外部协作方适配器：翻译引擎与电商目录同步。"""
