from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from pixshare.blob_store import BlobStore
from pixshare.database import get_db
from pixshare.dependencies import get_blob_store
from pixshare.errors import POST_NOT_FOUND
from pixshare.schemas import (
    CommentCreate,
    CommentResponse,
    CommentsCountResponse,
    CommentUpdate,
    EnrichedPost,
    LikeCreate,
    LikeResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from pixshare.services import comment_service, like_service, post_service

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])

@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    user_id: str = Form(...),
    post_caption: str | None = Form(None),
    location: str | None = Form(None),
    media: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    data = PostCreate(user_id=user_id, post_caption=post_caption, location=location)
    post = await post_service.create_post(db, blobs, data, media)
    if post is None:
        # Nothing to store without media.
        return Response(status_code=204)
    return post

@router.get("", response_model=list[EnrichedPost])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await post_service.get_all_posts(db)

@router.get("/user/{user_id}", response_model=list[EnrichedPost])
async def list_user_posts(user_id: str, db: AsyncSession = Depends(get_db)):
    return await post_service.get_posts_by_user_id(db, user_id)

@router.get("/{post_id}", response_model=EnrichedPost)
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)):
    post = await post_service.get_post_by_id(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail=POST_NOT_FOUND)
    return post

@router.put("/{post_id}", response_model=PostResponse)
async def edit_post(post_id: str, data: PostUpdate, db: AsyncSession = Depends(get_db)):
    return await post_service.edit_post(db, post_id, data)

@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    await post_service.delete_post(db, blobs, post_id, user_id)

@router.post("/{post_id}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(post_id: str, data: CommentCreate, db: AsyncSession = Depends(get_db)):
    return await comment_service.add_comment(db, post_id, data)

@router.get("/{post_id}/comments/count", response_model=CommentsCountResponse)
async def get_comments_count(post_id: str, db: AsyncSession = Depends(get_db)):
    count = await comment_service.get_comments_count(db, post_id)
    return CommentsCountResponse(post_id=post_id, comments_count=count)

@router.put("/{post_id}/comments/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    post_id: str, comment_id: str, data: CommentUpdate, db: AsyncSession = Depends(get_db)
):
    return await comment_service.edit_comment(db, post_id, comment_id, data)

@router.delete("/{post_id}/comments/{comment_id}", status_code=204)
async def delete_comment(post_id: str, comment_id: str, db: AsyncSession = Depends(get_db)):
    await comment_service.delete_comment(db, post_id, comment_id)

@router.post("/{post_id}/likes", status_code=201, response_model=LikeResponse)
async def add_like(post_id: str, data: LikeCreate, db: AsyncSession = Depends(get_db)):
    return await like_service.add_like(db, post_id, data.user_id)

@router.get("/{post_id}/likes", response_model=list[LikeResponse])
async def list_likes(post_id: str, db: AsyncSession = Depends(get_db)):
    return await like_service.get_likes(db, post_id)
