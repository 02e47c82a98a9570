"""Router for the Messages feature.

Serves messages nested under their conversation as well as the flat
`/messages` resource used for search and single-message edits.
"""
from typing import List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.messages.controller import MessageController
from api.features.messages.dtos import (
    AppendMessageRequest,
    MessageDTO,
    MessageSearchResultDTO,
    UpdateMessageRequest,
)
from api.shared.db import get_db_session
from api.shared.rate_limit import enforce_write_limit
from api.shared.response import ResponseModel
from core.constants import MAX_DB_ID
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post(
    "/conversations/{conversation_id}/messages",
    status_code=status.HTTP_201_CREATED,
    response_model=ResponseModel[MessageDTO],
    response_model_exclude_unset=True,
    dependencies=[Depends(enforce_write_limit)],
)
@inject
async def append_message(
    request: AppendMessageRequest,
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.append_message(conversation_id, request, db_session=db_session)


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=ResponseModel[List[MessageDTO]],
    response_model_exclude_unset=True,
)
@inject
async def list_messages(
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.list_messages(
        conversation_id, limit=limit, offset=offset, db_session=db_session
    )


@router.get(
    "/conversations/{conversation_id}/messages/recent",
    response_model=ResponseModel[List[MessageDTO]],
    response_model_exclude_unset=True,
)
@inject
async def recent_messages(
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    count: int = Query(50, ge=1, le=1000),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.recent_messages(
        conversation_id, count=count, db_session=db_session
    )


@router.get(
    "/messages/search/{query:path}",
    response_model=ResponseModel[List[MessageSearchResultDTO]],
    response_model_exclude_unset=True,
)
@inject
async def search_messages(
    query: str,
    limit: int = Query(50, ge=1, le=1000),
    conversation_id: Optional[int] = Query(
        None, ge=1, le=MAX_DB_ID, description="Restrict to one conversation"
    ),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.search_messages(
        query, conversation_id=conversation_id, limit=limit, db_session=db_session
    )


@router.get(
    "/messages/{message_id}",
    response_model=ResponseModel[MessageDTO],
    response_model_exclude_unset=True,
)
@inject
async def get_message(
    message_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.get_message(message_id, db_session=db_session)


@router.put(
    "/messages/{message_id}",
    response_model=ResponseModel[MessageDTO],
    response_model_exclude_unset=True,
    dependencies=[Depends(enforce_write_limit)],
)
@inject
async def update_message(
    request: UpdateMessageRequest,
    message_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.update_message(message_id, request, db_session=db_session)


@router.delete(
    "/messages/{message_id}",
    response_model=ResponseModel[None],
    response_model_exclude_unset=True,
    dependencies=[Depends(enforce_write_limit)],
)
@inject
async def delete_message(
    message_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: MessageController = Depends(
        Provide[DependencyContainer.controllers.message_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.delete_message(message_id, db_session=db_session)
