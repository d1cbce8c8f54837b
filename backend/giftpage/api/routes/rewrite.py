from fastapi import APIRouter

from giftpage.api.deps import RewriterDep
from giftpage.core.errors import ValidationError
from giftpage.schemas.gift import RewriteRequest, RewriteResponse


router = APIRouter(tags=["assist"])


@router.post("/rewrite-message", response_model=RewriteResponse)
async def rewrite_message(payload: RewriteRequest, rewriter: RewriterDep) -> RewriteResponse:
    text = payload.text.strip()
    if not text:
        raise ValidationError("Text to rewrite is required.")
    return RewriteResponse(rewritten_text=await rewriter.rewrite(text))
