"""表现层：typer CLI 与 FastAPI HTTP 接口。"""
