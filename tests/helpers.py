"""Atom feed builders and a scripted stand-in for the arXiv API."""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Sequence, Union

from aiohttp import web
from multidict import CIMultiDict

PDF_BYTES = b"%PDF-1.4\n%test payload\n"


# Atom feed builders


def atom_entry(
    arxiv_id: str,
    title: str = "A Test Paper",
    summary: str = "An abstract.",
    authors: Sequence[str] = ("Ada Lovelace",),
    categories: Sequence[str] = ("cs.AI",),
    license_url: Optional[str] = None,
    extra: str = "",
) -> str:
    author_xml = "".join(f"<author><name>{name}</name></author>" for name in authors)
    category_xml = "".join(
        f'<category term="{term}" scheme="http://arxiv.org/schemas/atom"/>' for term in categories
    )
    license_xml = f'<link rel="license" href="{license_url}"/>' if license_url else ""
    primary = categories[0] if categories else "cs.AI"
    return f"""
  <entry>
    <id>http://arxiv.org/abs/{arxiv_id}</id>
    <updated>2021-01-02T00:00:00Z</updated>
    <published>2021-01-01T00:00:00Z</published>
    <title>{title}</title>
    <summary>{summary}</summary>
    {author_xml}
    <link href="http://arxiv.org/abs/{arxiv_id}" rel="alternate" type="text/html"/>
    <link title="pdf" href="http://arxiv.org/pdf/{arxiv_id}" rel="related" type="application/pdf"/>
    {license_xml}
    <arxiv:primary_category term="{primary}" scheme="http://arxiv.org/schemas/atom"/>
    {category_xml}
    {extra}
  </entry>"""


def atom_feed(
    entries: Sequence[str] = (),
    total: Optional[int] = None,
    start: int = 0,
    per_page: Optional[int] = None,
) -> str:
    total = len(entries) if total is None else total
    per_page = len(entries) if per_page is None else per_page
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"
      xmlns:opensearch="http://a9.com/-/spec/opensearch/1.1/"
      xmlns:arxiv="http://arxiv.org/schemas/atom">
  <link href="http://arxiv.org/api/query" rel="self" type="application/atom+xml"/>
  <title type="html">ArXiv Query</title>
  <id>http://arxiv.org/api/test</id>
  <updated>2021-01-03T00:00:00-05:00</updated>
  <opensearch:totalResults>{total}</opensearch:totalResults>
  <opensearch:startIndex>{start}</opensearch:startIndex>
  <opensearch:itemsPerPage>{per_page}</opensearch:itemsPerPage>
{"".join(entries)}
</feed>
"""


# Scripted local arXiv server


@dataclass
class ScriptedResponse:
    status: int = 200
    body: Union[str, bytes] = ""
    headers: Dict[str, str] = field(default_factory=dict)
    delay: float = 0.0


@dataclass
class RecordedRequest:
    path: str
    query: Dict[str, str]
    headers: CIMultiDict


class FakeArxiv:
    """Serves queued responses in order and records every request."""

    def __init__(self):
        self.responses: Deque[ScriptedResponse] = deque()
        self.requests: List[RecordedRequest] = []
        self.api_url = ""
        self.pdf_url = ""

    def queue(self, *responses: ScriptedResponse) -> None:
        self.responses.extend(responses)

    def queue_feed(self, *feeds: str) -> None:
        self.queue(*(ScriptedResponse(body=feed) for feed in feeds))

    def queue_pdf(self, body: bytes = PDF_BYTES) -> None:
        self.queue(ScriptedResponse(body=body, headers={"Content-Type": "application/pdf"}))

    async def handler(self, request: web.Request) -> web.Response:
        self.requests.append(
            RecordedRequest(
                path=request.path,
                query=dict(request.query),
                headers=request.headers.copy(),
            )
        )
        if not self.responses:
            return web.Response(status=500, text="no scripted response")

        scripted = self.responses.popleft()
        if scripted.delay:
            await asyncio.sleep(scripted.delay)

        body = scripted.body.encode("utf-8") if isinstance(scripted.body, str) else scripted.body
        return web.Response(status=scripted.status, body=body, headers=scripted.headers)
