"""
Session API routes: one endpoint per user action in the design workflow
"""
import base64
import logging
from contextlib import contextmanager

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from cafevision.core.exceptions import (
    ConceptNotFoundError,
    InvalidImageError,
    InvalidTransitionError,
    SessionNotFoundError,
    WorkflowBusyError,
)
from cafevision.engines.workflow import DesignWorkflow
from cafevision.schemas.session import RefinementRequest, SessionState
from cafevision.services.session_store import SessionStore, session_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sessions", tags=["sessions"])


def get_session_store() -> SessionStore:
    return session_store


@contextmanager
def _workflow_errors():
    """Translate workflow rejections into HTTP errors."""
    try:
        yield
    except (SessionNotFoundError, ConceptNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (WorkflowBusyError, InvalidTransitionError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidImageError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _workflow(session_id: str, store: SessionStore) -> DesignWorkflow:
    with _workflow_errors():
        return store.get(session_id)


@router.post("", response_model=SessionState, status_code=201)
async def create_session(store: SessionStore = Depends(get_session_store)):
    """Start a new design session"""
    return store.create().snapshot()


@router.get("/{session_id}", response_model=SessionState)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Current state of a session"""
    return _workflow(session_id, store).snapshot()


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    with _workflow_errors():
        store.delete(session_id)
    return Response(status_code=204)


@router.put("/{session_id}/image", response_model=SessionState)
async def upload_image(
    session_id: str, file: UploadFile = File(...), store: SessionStore = Depends(get_session_store)
):
    """Upload the raw site photo"""
    workflow = _workflow(session_id, store)
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=422, detail="Uploaded file is empty")

    mime_type = file.content_type or "image/jpeg"
    data_url = f"data:{mime_type};base64,{base64.b64encode(contents).decode('utf-8')}"
    with _workflow_errors():
        return workflow.upload_image(data_url)


@router.delete("/{session_id}/image", response_model=SessionState)
async def clear_image(session_id: str, store: SessionStore = Depends(get_session_store)):
    workflow = _workflow(session_id, store)
    with _workflow_errors():
        return workflow.clear_image()


@router.post("/{session_id}/analysis", response_model=SessionState)
async def start_analysis(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Analyze the uploaded photo and generate design concepts"""
    workflow = _workflow(session_id, store)
    with _workflow_errors():
        return await workflow.start_analysis()


@router.post("/{session_id}/concepts/{concept_id}/visualization", response_model=SessionState)
async def select_concept(session_id: str, concept_id: str, store: SessionStore = Depends(get_session_store)):
    """Select a concept and render it on the site photo"""
    workflow = _workflow(session_id, store)
    with _workflow_errors():
        return await workflow.select_concept(concept_id)


@router.post("/{session_id}/back", response_model=SessionState)
async def back_to_concepts(session_id: str, store: SessionStore = Depends(get_session_store)):
    workflow = _workflow(session_id, store)
    with _workflow_errors():
        return workflow.back_to_concepts()


@router.post("/{session_id}/refinements", response_model=SessionState)
async def refine_visualization(
    session_id: str, request: RefinementRequest, store: SessionStore = Depends(get_session_store)
):
    """Apply a text refinement to the current visualization"""
    workflow = _workflow(session_id, store)
    with _workflow_errors():
        return await workflow.refine(request.instruction)


@router.post("/{session_id}/reset", response_model=SessionState)
async def reset_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _workflow(session_id, store).reset()


@router.delete("/{session_id}/error", response_model=SessionState)
async def dismiss_error(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _workflow(session_id, store).dismiss_error()


@router.get("/{session_id}/visualization/download")
async def download_visualization(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Download the current visualization as an image file"""
    workflow = _workflow(session_id, store)
    with _workflow_errors():
        exported = workflow.export_visualization()
    return Response(
        content=exported.content,
        media_type=exported.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
