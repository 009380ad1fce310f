"""
Homework planner backend package.

Core pieces:
- task_store.TaskStore: tiered task storage (remote for premium, local fallback)
- progression.ProgressionLedger: XP, levels, streaks and profile operations
- main.create_app: FastAPI application exposing both
"""
