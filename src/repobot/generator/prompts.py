"""Prompts for the generation backend and the local blog fallback.

Each builder returns a (system, user) pair. The blog fallback is a fixed
template so a post can still be opened for review when the backend is
down; code has no fallback.
"""

from typing import Tuple

from src.repobot.classifier.models import GenerationRequest, WorkflowKind


BLOG_SYSTEM_PROMPT = """You are a technical blog writer with a casual, clear voice, writing for fellow developers.

Style:
- Conversational but informative
- Practical, working Go examples where they help
- Start most paragraphs with a CSS class line in this markdown form: {.text-lg .text-gray-600 .mb-8}
- Fence code with ~~~ rather than backticks

Return only the post body. Do not include front matter."""


BLOG_MODIFICATION_SYSTEM_PROMPT = """You edit blog posts on request. Keep the author's casual, developer-friendly voice and the existing {.css .class} paragraph markers.

Return only the complete updated post body. Do not add front matter."""


CODE_SYSTEM_PROMPT = """You are an experienced Go developer adding code to an existing Go project.

Guidelines:
- Idiomatic Go with clear names and focused functions
- Error handling with descriptive, wrapped errors
- Early returns; blank lines between logical sections
- Comments only where the logic is not obvious
- Include the package clause and imports when the file is new

Return only Go source. No markdown fences, no explanations."""


CODE_MODIFICATION_SYSTEM_PROMPT = """You are an experienced Go developer changing existing code on request.

Keep the change minimal and consistent with the surrounding style and error handling.

Return only the complete updated Go source. No markdown fences, no explanations."""


def _format_tags(request: GenerationRequest) -> str:
    return ", ".join(request.tags) if request.tags else "none"


def build_generation_prompt(
    request: GenerationRequest,
    workflow: WorkflowKind,
) -> Tuple[str, str]:
    """Prompt pair for generating new content from a classified request."""
    if workflow is WorkflowKind.BLOG:
        return BLOG_SYSTEM_PROMPT, f"""Write a blog post titled "{request.title}".

Topic:
{request.topic or request.title}

Target tags: {_format_tags(request)}"""

    target = request.target_path or "(choose a sensible file in the project)"
    return CODE_SYSTEM_PROMPT, f"""Request: {request.title}

Description:
{request.topic or request.title}

Target file: {target}"""


def build_modification_prompt(
    current_text: str,
    instruction: str,
    workflow: WorkflowKind,
) -> Tuple[str, str]:
    """Prompt pair for applying a reviewer's change request to existing content."""
    system = (
        BLOG_MODIFICATION_SYSTEM_PROMPT
        if workflow is WorkflowKind.BLOG
        else CODE_MODIFICATION_SYSTEM_PROMPT
    )
    kind = "blog post" if workflow is WorkflowKind.BLOG else "code"
    return system, f"""Current {kind}:
{current_text}

Requested change: "{instruction.strip()}"

Apply the change."""


FALLBACK_POST_TEMPLATE = """{{.text-lg .text-gray-600 .mb-8}}
Hey there! Let's dig into {topic}. It's one of those subjects that is as practical as it is interesting.

{{.text-base .mb-6}}
So what are we actually talking about? {topic} has been on my mind lately, and it seemed worth writing a few notes down.

{{.text-base .mb-6}}
A tiny example to get things going:

~~~go
// A placeholder to illustrate the idea
func example() {{
    fmt.Println("Real code goes here!")
}}
~~~

{{.text-base .mb-6}}
Simple, but it shows the shape of the approach. Keeping things small makes them easier to reason about.

{{.text-base .mb-6}}
That's the gist for now. Comment on the pull request with anything you'd like changed!
"""


def render_fallback_post(topic: str) -> str:
    """Deterministic post body used when the backend cannot generate one.

    The topic appears exactly twice in the output.
    """
    return FALLBACK_POST_TEMPLATE.format(topic=topic.strip())
