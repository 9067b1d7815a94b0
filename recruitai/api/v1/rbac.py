"""
权限查询 API 路由
"""
from fastapi import APIRouter, Depends

from recruitai.core.response import DictResponse, success_response
from recruitai.core.security import CurrentUser, get_user_capabilities
from ..deps import get_current_user

router = APIRouter()


@router.get("/user-capabilities", summary="当前用户能力", response_model=DictResponse)
async def user_capabilities(user: CurrentUser = Depends(get_current_user)):
    return success_response(data={
        "user": {"id": user.id, "email": user.email, "role": user.role.value},
        "capabilities": get_user_capabilities(user),
    })
