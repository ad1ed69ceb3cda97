import logging

from fastapi import HTTPException

from services.llm.base.llm import LLM

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a writing assistant for a blog platform. "
    "Write engaging, well-structured blog posts."
)


class ContentGenerator:
    def __init__(self, llm: LLM):
        self.llm = llm

    async def generate(self, title: str) -> str:
        """
        Generate a blog post for a title

        Args:
            title: The title of the post to write

        Returns:
            The generated text

        Raises:
            HTTPException: 400 for a blank title, 500 if the upstream call fails
                or its response can't be read
        """
        if not title or not title.strip():
            raise HTTPException(status_code=400, detail="Title is required.")

        response = await self.llm.agenerate(SYSTEM_PROMPT, f"Write a blog post about: {title}")
        if not response.success:
            logger.error("Content generation failed for title %r: %s", title, response.error)
            raise HTTPException(status_code=500, detail=f"Error generating content: {response.error}")

        return response.content
