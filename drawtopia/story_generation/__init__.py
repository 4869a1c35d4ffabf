"""
Story-side building blocks: templates, story pages, prompts and title suggestions.
"""

from .prompting import (
    PagePromptBuilder,
    PromptLibrary,
    default_prompt_library,
    replace_placeholders,
)
from .templates import (
    BookTemplate,
    StoryPage,
    StoryWorld,
    coerce_story_pages,
    select_template_for_world,
)
from .titles import StoryTitleClient, TitleRequest, TitleSuggestions

__all__ = [
    "BookTemplate",
    "PagePromptBuilder",
    "PromptLibrary",
    "StoryPage",
    "StoryTitleClient",
    "StoryWorld",
    "TitleRequest",
    "TitleSuggestions",
    "coerce_story_pages",
    "default_prompt_library",
    "replace_placeholders",
    "select_template_for_world",
]
