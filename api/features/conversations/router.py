"""Router for the Conversations feature."""
from typing import List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Body, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.controller import ConversationController
from api.features.conversations.dtos import ConversationDTO, ConversationTitleRequest
from api.shared.db import get_db_session
from api.shared.rate_limit import enforce_write_limit
from api.shared.response import ResponseModel
from core.constants import MAX_DB_ID
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ResponseModel[ConversationDTO],
    response_model_exclude_unset=True,
    dependencies=[Depends(enforce_write_limit)],
)
@inject
async def create_conversation(
    request: Optional[ConversationTitleRequest] = Body(default=None),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.create_conversation(
        request or ConversationTitleRequest(), db_session=db_session
    )


@router.get(
    "",
    response_model=ResponseModel[List[ConversationDTO]],
    response_model_exclude_unset=True,
)
@inject
async def list_conversations(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user_id: Optional[int] = Query(
        None, ge=1, le=MAX_DB_ID, description="Filter by owning user"
    ),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.list_conversations(
        user_id=user_id, limit=limit, offset=offset, db_session=db_session
    )


@router.get(
    "/search/{query:path}",
    response_model=ResponseModel[List[ConversationDTO]],
    response_model_exclude_unset=True,
)
@inject
async def search_conversations(
    query: str,
    limit: int = Query(20, ge=1, le=1000),
    user_id: Optional[int] = Query(
        None, ge=1, le=MAX_DB_ID, description="Filter by owning user"
    ),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.search_conversations(
        query, user_id=user_id, limit=limit, db_session=db_session
    )


@router.get(
    "/{conversation_id}",
    response_model=ResponseModel[ConversationDTO],
    response_model_exclude_unset=True,
)
@inject
async def get_conversation(
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.get_conversation(conversation_id, db_session=db_session)


@router.put(
    "/{conversation_id}",
    response_model=ResponseModel[ConversationDTO],
    response_model_exclude_unset=True,
    dependencies=[Depends(enforce_write_limit)],
)
@inject
async def update_conversation(
    request: ConversationTitleRequest,
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.update_conversation(
        conversation_id, request, db_session=db_session
    )


@router.delete(
    "/{conversation_id}",
    response_model=ResponseModel[None],
    response_model_exclude_unset=True,
    dependencies=[Depends(enforce_write_limit)],
)
@inject
async def delete_conversation(
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.delete_conversation(conversation_id, db_session=db_session)
