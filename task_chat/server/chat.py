"""Read-only HTTP view of the live chat presence."""
from fastapi import APIRouter, Depends, Request

from . import schemas
from .gateway import ChatGateway

router = APIRouter(prefix="/chat", tags=["chat"])


def get_gateway(request: Request) -> ChatGateway:
    return request.app.state.gateway


@router.get("/online", response_model=schemas.OnlineUsers)
def online_users(gateway: ChatGateway = Depends(get_gateway)):
    users = gateway.online_user_ids()
    return schemas.OnlineUsers(users=users, count=len(users))
