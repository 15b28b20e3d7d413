"""
FastAPI routers grouped by resource (auth, schools, tasks, supervisions,
additional tasks, reports).

Each module exposes an APIRouter included by pengawas.app.create_app.
"""
