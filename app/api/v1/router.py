from fastapi import APIRouter

from app.api.v1.endpoints import admin, competitions, evaluation, health, judge, submissions, users

api_router = APIRouter()
api_router.include_router(users.router)
api_router.include_router(competitions.router)
api_router.include_router(submissions.router)
api_router.include_router(evaluation.router)
api_router.include_router(judge.router)
api_router.include_router(admin.router)
api_router.include_router(health.router)
