from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Any, List

from dotenv import load_dotenv
from langchain_core.messages import SystemMessage, HumanMessage, BaseMessage


@dataclass
class LLMResponse:
    """Container for LLM responses"""
    content: str
    raw_response: Any
    success: bool
    error: Optional[str] = None


class LLM(ABC):
    """Base interface for LLM interactions"""

    @abstractmethod
    def __init__(
            self,
            model: str,
            temperature: float = 0.7,
            max_retries: int = 0
    ):
        """Initialize LLM interface

        Args:
            model: The LLM model to use
            temperature: Controls randomness in output (0.0 = deterministic)
            max_retries: Number of retry attempts for failed calls
        """
        load_dotenv()
        self.model = model
        self.chat = None

    def _create_messages(self, system_prompt: str, user_message: str) -> List[BaseMessage]:
        """Create formatted messages for the LLM

        Args:
            system_prompt: The system instruction prompt
            user_message: The user's input message

        Returns:
            List of formatted messages
        """
        return [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message)
        ]

    @staticmethod
    def _extract_text(content: Any) -> Optional[str]:
        """Pull the generated text out of a chat model's message content

        The content is either a plain string or a list of parts, each carrying
        its text under a nested "text" field.

        Returns:
            The text, or None if the content doesn't have that shape
        """
        if isinstance(content, str):
            return content

        if isinstance(content, list):
            texts = []
            for part in content:
                if isinstance(part, str):
                    texts.append(part)
                elif isinstance(part, dict) and isinstance(part.get("text"), str):
                    texts.append(part["text"])
            if texts:
                return "".join(texts)

        return None

    def _parse_response(self, content: Any) -> LLMResponse:
        """Parse the LLM response into an LLMResponse

        Args:
            content: Message content returned by the chat model

        Returns:
            LLMResponse object containing the text, or the reason it couldn't be read
        """
        text = self._extract_text(content)
        if text is None or not text.strip():
            return LLMResponse(
                content="",
                raw_response=content,
                success=False,
                error="Response did not contain any generated text"
            )

        return LLMResponse(
            content=text,
            raw_response=content,
            success=True
        )

    async def agenerate(self, system_prompt: str, user_message: str) -> LLMResponse:
        """Generate a response from the LLM

        Args:
            system_prompt: System instruction prompt
            user_message: User's input message

        Returns:
            LLMResponse object containing the response
        """
        try:
            messages = self._create_messages(system_prompt, user_message)
            response = await self.chat.ainvoke(messages)
            return self._parse_response(response.content)
        except Exception as e:
            return LLMResponse(
                content="",
                raw_response="",
                success=False,
                error=f"Generation failed: {str(e)}"
            )
