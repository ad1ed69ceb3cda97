import logging

from fastapi import APIRouter, HTTPException
from starlette.responses import Response

from dependencies import TextReader

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/read/{post_id}")
async def read_post_content(post_id: str, text_reader: TextReader):
    """Read a post's content aloud and return it as a WAV file"""
    try:
        audio = await text_reader.read_post(post_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error reading post %s", post_id)
        raise HTTPException(status_code=500, detail=f"An error occurred: {str(e)}")

    return Response(
        content=audio,
        media_type="audio/wav",
        headers={"Content-Disposition": f'attachment; filename="post-{post_id}-audio.wav"'},
    )
