# Notes client: store client, assist services and the editor state controller
from notekeeper.client.api import APIClient
from notekeeper.client.assist import (
    AssistService,
    LocalTextImprovementService,
    TextImprovementService,
    build_assist_service,
)
from notekeeper.client.controller import EditorStateController
from notekeeper.client.errors import (
    AssistError,
    AssistReason,
    ClientError,
    CreateError,
    DeleteError,
    LoadError,
    RemoteStoreError,
    SaveError,
    ValidationError,
)
from notekeeper.client.models import Note, NoteDraft
from notekeeper.client.store import RemoteStoreClient
from notekeeper.client.view import EditorView, ViewState

__all__ = [
    "APIClient",
    "AssistError",
    "AssistReason",
    "AssistService",
    "ClientError",
    "CreateError",
    "DeleteError",
    "EditorStateController",
    "EditorView",
    "LoadError",
    "LocalTextImprovementService",
    "Note",
    "NoteDraft",
    "RemoteStoreClient",
    "RemoteStoreError",
    "SaveError",
    "TextImprovementService",
    "ValidationError",
    "ViewState",
    "build_assist_service",
]
