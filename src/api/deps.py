# src/api/deps.py
"""Request dependencies resolved from application state."""

from __future__ import annotations

from fastapi import Request

from docreview.config.settings import Settings
from docreview.llm.base_client import BaseLLMClient
from docreview.pipeline.controller import StageController
from docreview.session.store import SessionStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_client(request: Request) -> BaseLLMClient:
    return request.app.state.client


def get_controller(request: Request) -> StageController:
    return request.app.state.controller
