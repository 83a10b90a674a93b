"""
Task Manager backend package.

The FastAPI application lives in `task_api.main` (`task_api.main:app`, or
`task_api.main.create_app()` to build one around a specific store).
"""

__version__ = "0.1.0"
