from fastapi import APIRouter, Depends, HTTPException, Response
from bulkshorts.api.deps import post_registry
from bulkshorts.core.security import Principal, get_principal
from bulkshorts.modules.posts.schemas import PostCreate, PostRecord, PostUpdate
from bulkshorts.modules.posts.service import PostRegistry

router = APIRouter()

@router.post("", response_model=PostRecord, response_model_by_alias=False, status_code=201)
async def create_post(
    payload: PostCreate,
    principal: Principal = Depends(get_principal),
    registry: PostRegistry = Depends(post_registry),
):
    # the caller's partition always wins over a user id in the body
    return registry.create(payload.model_copy(update={"user_id": principal.user_id}))

@router.get("", response_model=list[PostRecord], response_model_by_alias=False)
async def list_posts(
    principal: Principal = Depends(get_principal),
    registry: PostRegistry = Depends(post_registry),
):
    return registry.list(principal.user_id)

@router.get("/{post_id}", response_model=PostRecord, response_model_by_alias=False)
async def get_post(
    post_id: str,
    principal: Principal = Depends(get_principal),
    registry: PostRegistry = Depends(post_registry),
):
    post = registry.get(principal.user_id, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post

@router.patch("/{post_id}", response_model=PostRecord, response_model_by_alias=False)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    principal: Principal = Depends(get_principal),
    registry: PostRegistry = Depends(post_registry),
):
    post = registry.update(principal.user_id, post_id, payload)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post

@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    principal: Principal = Depends(get_principal),
    registry: PostRegistry = Depends(post_registry),
):
    registry.delete(principal.user_id, post_id)
    return Response(status_code=204)
