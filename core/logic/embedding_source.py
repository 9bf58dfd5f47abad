"""
Embedding Source Builder.

Builds the text the embedding generator sees for one piece of content.

Exports:
    build_embedding_source: Assemble the embedding input text
"""

from typing import List, Optional

from ..models.content import Content


def build_embedding_source(content: Content, keywords: Optional[List[str]] = None) -> str:
    """
    Assemble the embedding input text.

    One segment per line, in this order, empty segments omitted:
        title
        description
        Tags: <user tags>
        Keywords: <classifier keywords>

    Args:
        content: Content as re-read by stage 2
        keywords: Keywords from the stage 1 AnalysisResult

    Returns:
        Newline-joined source text (may be empty)
    """
    lines = []

    if content.title and content.title.strip():
        lines.append(content.title.strip())

    if content.description and content.description.strip():
        lines.append(content.description.strip())

    tags = [t for t in content.tags if t and t.strip()]
    if tags:
        lines.append("Tags: " + ", ".join(tags))

    kws = [k for k in (keywords or []) if k and k.strip()]
    if kws:
        lines.append("Keywords: " + ", ".join(kws))

    return "\n".join(lines)
