"""Prompt catalog for the editorial assistance features.

Templates use ``{{name}}`` placeholders filled by plain string replacement.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

NEWS_EDITOR_SYSTEM_PROMPT = (
    "You are a senior editor for a Korean K-POP and entertainment news desk. "
    "You analyse draft articles for accuracy, house style and sensitive wording. "
    "Always answer in Korean, stay neutral and objective, and give concrete suggestions."
)


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    description: str
    system_prompt: str
    user_prompt_template: str
    output_format: str = "json"
    defaults: Mapping[str, str | int | float] = field(default_factory=dict)


def fill_template(template: str, variables: Mapping[str, object]) -> str:
    """Replace every ``{{key}}`` occurrence with ``str(value)``."""
    result = template
    for key, value in variables.items():
        result = result.replace("{{" + key + "}}", str(value))
    return result


STYLE_UNIFY = PromptTemplate(
    name="style-unify",
    description="Unify the article voice to entertainment-news house style",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Review the writing style of this article against entertainment-news house style
(reporting verbs such as "~라고 전했다", "~라고 밝혔다", "관심이 모인다").

[Article]
{{content}}

List every sentence that breaks the style together with a rewrite.

Respond as JSON:
{"isConsistent": boolean, "suggestions": [{"original": "...", "suggested": "...", "reason": "..."}]}""",
)

FACT_CHECK = PromptTemplate(
    name="fact-check",
    description="Verify names, dates and internal consistency",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Verify the facts in this article: artist, member, group and agency names;
release, comeback and performance dates; contradictions inside the text.

[Article: title, subtitle and body]
{{full_text}}

Respond as JSON:
{"isValid": boolean, "issues": [{"type": "date" | "name" | "fact" | "schedule", "severity": "warning" | "error", "message": "...", "suggestion": "..."}]}""",
)

AUTO_TAG = PromptTemplate(
    name="auto-tag",
    description="Extract tags from the article",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Extract tags from this article: people, groups, albums and songs,
events (concerts, award shows) and keywords (comeback, debut, world tour).

[Article]
{{content}}

Return at most {{maxTags}} tags.

Respond as JSON (one confidence between 0 and 1 per tag):
{"tags": ["..."], "confidence": [0.95]}""",
    defaults={"maxTags": 10},
)

DUPLICATE_CHECK = PromptTemplate(
    name="duplicate-check",
    description="Find repeated information inside the article",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Find repeated information in this article: facts restated between lead and body,
recycled phrasing, redundant sentences.

[Article]
{{content}}

Respond as JSON:
{"hasDuplicates": boolean, "duplicates": [{"text": "...", "occurrences": 2, "positions": [{"start": 0, "end": 50}]}], "similarArticles": []}""",
)

SUMMARIZE = PromptTemplate(
    name="summarize",
    description="Summarize the article",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Summarize this article.

[Article]
{{content}}

Summary type: {{type}}
- brief: one or two sentences
- detailed: include the main points
- sns: short social post, emoji allowed
- seo: meta description

Respond as JSON:
{"summary": "...", "keyPoints": ["..."], "snsVersion": "...", "seoVersion": "..."}""",
    defaults={"type": "brief"},
)

CATEGORY_SUGGEST = PromptTemplate(
    name="category-suggest",
    description="Suggest the section the article belongs to",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Pick the best section for this article.

[Article]
{{content}}

Sections: 스타뉴스, 엔터테인먼트 (sub: 음악, 방송영화, 공연), 스타트렌드, 이슈, 종합, 실시간인기.

Respond as JSON:
{"category": "...", "subCategory": "...", "confidence": 0.95, "alternatives": [{"category": "...", "confidence": 0.7}]}""",
)

SENSITIVITY_CHECK = PromptTemplate(
    name="sensitivity-check",
    description="Flag offensive, defamatory or privacy-violating wording",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Check this article for offensive or demeaning wording, likely controversy,
exposed personal information, possible defamation and sexualised wording.

[Article]
{{content}}

Respond as JSON:
{"hasSensitiveContent": boolean, "items": [{"type": "offensive" | "controversial" | "privacy" | "defamation", "severity": "low" | "medium" | "high", "text": "...", "suggestion": "..."}]}""",
)

SPELL_CHECK = PromptTemplate(
    name="spell-check",
    description="Spelling, spacing and grammar check",
    system_prompt=NEWS_EDITOR_SYSTEM_PROMPT,
    user_prompt_template="""Check spelling, word spacing and grammar in the title, subtitle and body.

[Article: title, subtitle and body]
{{full_text}}

Respond as JSON:
{"errors": [{"original": "...", "corrected": "...", "reason": "...", "severity": "warning" | "error"}], "totalErrors": 0}""",
)

PROMPT_CATALOG: dict[str, PromptTemplate] = {
    t.name: t
    for t in (
        AUTO_TAG,
        FACT_CHECK,
        STYLE_UNIFY,
        DUPLICATE_CHECK,
        SUMMARIZE,
        CATEGORY_SUGGEST,
        SENSITIVITY_CHECK,
        SPELL_CHECK,
    )
}
