"""
Conversation Pipeline API.

Entry point for the processing and cost endpoints.
"""

from ddtrace import patch_all
from fastapi import FastAPI

from conversation_pipeline.routes import conversations_router, costs_router

patch_all()

app = FastAPI(title="Conversation Pipeline API")
app.include_router(conversations_router)
app.include_router(costs_router)
