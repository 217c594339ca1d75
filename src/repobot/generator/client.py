"""Content generator gateway.

ContentGenerator turns classified requests and change instructions into
text using an OpenAI-compatible chat endpoint through LangChain. Every
call is a single request bounded by ``max_tokens``; a failed or empty
response raises GenerationError and is not retried. What to do about the
failure (template fallback or a comment) is the workflow's decision.
"""

import logging
from typing import Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from src.repobot.classifier.models import GenerationRequest, WorkflowKind
from src.repobot.generator.prompts import (
    build_generation_prompt,
    build_modification_prompt,
)


logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when the backend fails or returns no content.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


def _strip_code_fence(text: str) -> str:
    """Drop a surrounding markdown code fence the model sometimes adds."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return text
    lines = stripped.split("\n")
    if len(lines) >= 2 and lines[-1].strip() == "```":
        return "\n".join(lines[1:-1]) + "\n"
    return text


class ContentGenerator:
    """Gateway to the text-generation backend.

    Attributes:
        llm_url: Base URL of the OpenAI-compatible endpoint.
        model_name: Model to request.
        max_tokens: Output ceiling for every call.
        timeout: Request timeout in seconds.

    Example:
        >>> generator = ContentGenerator(
        ...     llm_url="https://api.openai.com/v1",
        ...     model_name="gpt-4o-mini",
        ...     api_key="sk-...",
        ... )
        >>> text = await generator.generate(request, WorkflowKind.BLOG)
    """

    def __init__(
        self,
        llm_url: str,
        model_name: str,
        api_key: str,
        max_tokens: int = 5000,
        timeout: float = 120.0,
        temperature: float = 0.7,
        llm: Optional[ChatOpenAI] = None,
    ):
        """Initialize the generator.

        Args:
            llm_url: URL of the OpenAI-compatible endpoint.
            model_name: Model to use.
            api_key: Backend API key.
            max_tokens: Maximum output tokens per call.
            timeout: Request timeout in seconds.
            temperature: Sampling temperature.
            llm: Prebuilt chat model, mainly for tests.
        """
        self.llm_url = llm_url
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.temperature = temperature
        self._api_key = api_key
        self._llm = llm

    @property
    def llm(self) -> ChatOpenAI:
        """Get the chat model, creating it if necessary."""
        if self._llm is None:
            self._llm = ChatOpenAI(
                base_url=self.llm_url,
                model=self.model_name,
                api_key=self._api_key,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._llm

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send one prompt and return the generated text.

        Raises:
            GenerationError: If the call fails or yields no text.
        """
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]

        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.warning(
                "Generation backend call failed",
                extra={"model": self.model_name, "error": str(e)},
            )
            raise GenerationError(f"Generation backend call failed: {e}", cause=e) from e

        content = response.content
        if not isinstance(content, str) or not content.strip():
            logger.warning(
                "Generation backend returned no content",
                extra={"model": self.model_name},
            )
            raise GenerationError("Generation backend returned no content")

        logger.info(
            "Generated content",
            extra={"model": self.model_name, "content_length": len(content)},
        )
        return content

    async def generate(self, request: GenerationRequest, workflow: WorkflowKind) -> str:
        """Generate new content for a classified issue."""
        system_prompt, user_prompt = build_generation_prompt(request, workflow)
        text = await self.complete(system_prompt, user_prompt)
        return _strip_code_fence(text) if workflow is WorkflowKind.CODE else text

    async def modify(
        self,
        current_text: str,
        instruction: str,
        workflow: WorkflowKind,
    ) -> str:
        """Apply a change instruction to existing content."""
        system_prompt, user_prompt = build_modification_prompt(
            current_text, instruction, workflow
        )
        text = await self.complete(system_prompt, user_prompt)
        return _strip_code_fence(text) if workflow is WorkflowKind.CODE else text
