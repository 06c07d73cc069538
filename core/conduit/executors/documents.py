"""Artifact-producing kinds.

Rendering is delegated to the ``DocumentBuilder`` collaborator and the result
is persisted through the ``ArtifactStore``; each kind returns the ``Artifact``.
"""

from __future__ import annotations

import html
import re
from typing import Any

from conduit.domain.models import Artifact
from conduit.errors import NodeExecutionError
from conduit.execution.cancellation import run_cancellable
from conduit.execution.resolver import render_value
from conduit.executors.helpers import try_load_json
from conduit.ports import DocumentBuilder
from conduit.registry import NodeRequest, register_node_kind

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_SUFFIX = re.compile(r"\.(png|jpe?g|gif|bmp|webp)$", re.IGNORECASE)
HEADING = re.compile(r"^(#{1,3})\s+(.+)$", re.MULTILINE)

BLOG_THEMES = {
    "minimal": (
        "body{font-family:system-ui,sans-serif;max-width:700px;margin:2rem auto;padding:0 1rem;"
        "color:#333;line-height:1.7}h1,h2,h3{color:#111}a{color:#2563EB}"
        "pre{background:#f5f5f5;padding:1rem;border-radius:6px;overflow-x:auto}code{font-size:0.9em}"
        "blockquote{border-left:3px solid #ddd;margin-left:0;padding-left:1rem;color:#666}"
    ),
    "modern": (
        'body{font-family:"Inter",system-ui,sans-serif;max-width:750px;margin:3rem auto;'
        "padding:0 1.5rem;color:#e2e8f0;background:#0f172a;line-height:1.8}"
        "h1{font-size:2.2rem;color:#93c5fd}"
        "h2{color:#93c5fd;border-bottom:1px solid #1e293b;padding-bottom:0.5rem}h3{color:#c4b5fd}"
        "a{color:#60a5fa}pre{background:#1e293b;padding:1rem;border-radius:8px;"
        "border:1px solid #334155;overflow-x:auto}code{color:#f472b6;font-size:0.9em}"
        "blockquote{border-left:3px solid #3b82f6;margin-left:0;padding-left:1rem;color:#94a3b8}"
        "img{max-width:100%;border-radius:8px}"
    ),
    "newspaper": (
        'body{font-family:Georgia,"Times New Roman",serif;max-width:680px;margin:2rem auto;'
        "padding:0 1rem;color:#1a1a1a;line-height:1.8}"
        "h1{font-size:2.5rem;text-align:center;border-bottom:2px solid #000;padding-bottom:0.5rem;"
        "margin-bottom:1.5rem}h2{font-size:1.5rem;border-bottom:1px solid #ccc;padding-bottom:0.3rem}"
        "a{color:#1a1a1a;text-decoration:underline}"
        "blockquote{font-style:italic;border-left:3px solid #000;margin-left:0;padding-left:1rem}"
    ),
}


def _builder(request: NodeRequest) -> DocumentBuilder:
    builder = request.collaborators.document_builder
    if builder is None:
        raise NodeExecutionError(f"{request.kind}: no document builder configured.")
    return builder


def _persist(
    request: NodeRequest,
    *,
    default_name: str,
    extension: str,
    content: bytes | str,
    mime_type: str,
) -> Artifact:
    store = request.collaborators.artifact_store
    if store is None:
        raise NodeExecutionError(f"{request.kind}: no artifact store configured.")

    filename = (request.data.get("filenameTemplate") or default_name) + extension
    return store.save(
        agent_id=request.agent_id,
        execution_id=request.execution_id,
        node_id=request.node_id,
        node_kind=request.kind,
        filename=filename,
        content=content,
        mime_type=mime_type,
    )


@register_node_kind("PDFNode")
async def execute_pdf(request: NodeRequest) -> Artifact:
    content = await run_cancellable(
        _builder(request).pdf(render_value(request.input), request.data), request.token
    )
    return _persist(
        request,
        default_name="output-{{date}}",
        extension=".pdf",
        content=content,
        mime_type="application/pdf",
    )


@register_node_kind("DocxNode")
async def execute_docx(request: NodeRequest) -> Artifact:
    content = await run_cancellable(
        _builder(request).docx(render_value(request.input), request.data), request.token
    )
    return _persist(
        request,
        default_name="document-{{date}}",
        extension=".docx",
        content=content,
        mime_type=DOCX_MIME,
    )


def table_of_contents(markdown: str) -> str:
    """An HTML nav listing the level 1-3 headings of ``markdown``."""
    items = []
    for hashes, text in HEADING.findall(markdown):
        anchor = re.sub(r"[^a-z0-9]+", "-", text.lower())
        indent = (len(hashes) - 1) * 1.2
        items.append(f'<li style="margin-left:{indent:g}rem"><a href="#{anchor}">{html.escape(text)}</a></li>')
    if not items:
        return ""
    return '<nav class="toc"><h2>Table of Contents</h2><ul>' + "".join(items) + "</ul></nav>"


def blog_page(body: str, *, title: str, theme: str, description: str, toc: str = "") -> str:
    css = BLOG_THEMES.get(theme, BLOG_THEMES["modern"])
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f'  <meta name="description" content="{html.escape(description, quote=True)}">\n'
        f"  <title>{html.escape(title)}</title>\n"
        f"  <style>{css}</style>\n"
        "</head>\n"
        "<body>\n"
        f"{toc}\n"
        f"{body}\n"
        "</body>\n"
        "</html>"
    )


@register_node_kind("BlogNode")
async def execute_blog(request: NodeRequest) -> Artifact:
    """Render markdown input as a standalone themed HTML page."""
    markdown = render_value(request.input)
    body = await run_cancellable(_builder(request).html(markdown, request.data), request.token)

    toc = table_of_contents(markdown) if request.data.get("includeTableOfContents") else ""
    page = blog_page(
        body,
        title=request.data.get("pageTitle") or "Blog Post",
        theme=request.data.get("cssTheme") or "modern",
        description=request.data.get("metaDescription") or "",
        toc=toc,
    )
    return _persist(
        request,
        default_name="blog-{{date}}",
        extension=".html",
        content=page,
        mime_type="text/html",
    )


def video_sources(data: dict[str, Any], value: Any) -> dict[str, Any]:
    """Image and audio sources from node data, overridden by the input.

    The input may be a JSON object with ``image``, ``images`` or ``audio`` keys,
    or a bare image path.
    """
    image = data.get("imagePath") or ""
    audio = data.get("audioSource") or ""

    parsed = try_load_json(value)
    if isinstance(parsed, dict):
        image = parsed.get("images") or parsed.get("image") or image
        audio = parsed.get("audio") or audio
    elif isinstance(value, str) and IMAGE_SUFFIX.search(value.strip()):
        image = value.strip()

    return {"image": image, "audio": audio}


@register_node_kind("VideoNode")
async def execute_video(request: NodeRequest) -> Artifact:
    sources = video_sources(request.data, request.input)
    if not sources["image"] and not sources["audio"]:
        raise NodeExecutionError("VideoNode: no image or audio source provided.")

    options = {
        "fps": request.data.get("fps") or 30,
        "resolution": request.data.get("resolution") or "1920x1080",
        "codec": request.data.get("codec") or "libx264",
        "inputType": request.data.get("inputType"),
    }
    content = await run_cancellable(_builder(request).video(sources, options), request.token)
    return _persist(
        request,
        default_name="video-{{date}}",
        extension=".mp4",
        content=content,
        mime_type="video/mp4",
    )
