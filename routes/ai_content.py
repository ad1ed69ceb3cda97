from fastapi import APIRouter

from dependencies import CurrentUser, Generator
from models.auth import GenerateContentRequest

router = APIRouter()


@router.post("/generate")
async def generate_content(request: GenerateContentRequest, generator: Generator, current_user: CurrentUser):
    """
    Draft a blog post for a title with the generative model

    Args:
        request: The title to write about
        generator: ContentGenerator service
        current_user: The authenticated user
    """
    generated_content = await generator.generate(request.title)
    return {
        "title": request.title,
        "generatedContent": generated_content,
    }
