"""Narrative generation and best-effort structured extraction.

`render_from_raw_input` is the one pipeline used when a summary or meeting
record is created and when it is regenerated: it asks the generator for a
narrative, then for each requested section asks again with an extraction
prompt, falling back to a keyword scan of the narrative when that fails.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx
from jinja2 import Template
from pydantic import BaseModel, ConfigDict, Field

from workdigest.errors import CollaboratorUnavailableError, GenerationFailedError
from workdigest.types import DerivedFields
from workdigest.utilities.loggers import get_logger

logger = get_logger('narrative')

NO_ITEMS_FOUND = 'No specific items found.'


@runtime_checkable
class NarrativeGenerator(Protocol):
    def complete(self, prompt: str) -> str: ...


class OllamaNarrativeGenerator(BaseModel):
    """Completions from a local Ollama server's `/api/generate` endpoint"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    base_url: str = 'http://localhost:11434'
    model: str = 'llama3'
    temperature: float = Field(default=0.7, ge=0, le=2)
    top_p: float = Field(default=0.9, gt=0, le=1)
    max_tokens: int = Field(default=1000, gt=0)
    timeout_seconds: float = Field(default=120.0, gt=0)
    transport: httpx.BaseTransport | None = None

    def complete(self, prompt: str) -> str:
        logger.info(f'Requesting completion from Ollama model {self.model}')
        body = {
            'model': self.model,
            'prompt': prompt,
            'stream': False,
            'options': {'temperature': self.temperature, 'top_p': self.top_p, 'num_predict': self.max_tokens},
        }
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout_seconds, transport=self.transport) as client:
                response = client.post('/api/generate', json=body)
                response.raise_for_status()
                text = response.json()['response']
        except httpx.HTTPStatusError as e:
            logger.error(f'Ollama returned {e.response.status_code}: {e.response.text}')
            raise CollaboratorUnavailableError(f'Ollama returned {e.response.status_code}') from e
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error(f'Error calling Ollama: {e}')
            raise CollaboratorUnavailableError(f'Ollama unavailable: {e}') from e

        logger.debug(f'Generated completion with {len(text)} characters')
        return text

    def is_available(self) -> bool:
        try:
            with httpx.Client(base_url=self.base_url, timeout=5, transport=self.transport) as client:
                client.get('/api/tags').raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning(f'Ollama is not available: {e}')
            return False


WORK_SUMMARY_PROMPT = Template(
    """Please analyze the following engineer work data and provide a concise, professional summary.

Work Data:
{{ work_data }}

Please provide:
1. Key accomplishments and contributions
2. Collaboration highlights
3. Technical achievements
4. Areas of focus
5. Overall productivity assessment

Format the response as a clear, structured summary suitable for management review."""
)

ROLLUP_SUMMARY_PROMPT = Template(
    """Please analyze the following {{ period }} of engineer work data, collected day by day, \
and provide a concise, professional summary of the {{ period }}.

Work Data:
{{ work_data }}

Please provide:
1. Key accomplishments and achievements over the {{ period }}
2. Collaboration highlights
3. Recurring themes and areas of focus
4. Overall productivity trend

Format the response as a clear, structured summary suitable for management review."""
)

MEETING_MINUTES_PROMPT = Template(
    """Please analyze the following meeting transcript and generate professional meeting minutes.

{% if attendees %}Meeting Attendees: {{ attendees|join(', ') }}

{% endif %}Transcript:
{{ transcript }}

Please provide:
1. Meeting summary
2. Key discussion points
3. Decisions made
4. Action items with owners (if mentioned)
5. Next steps

Format as professional meeting minutes suitable for distribution to stakeholders."""
)

EXTRACTION_PROMPT = Template(
    """Extract only the {{ what }} from the following text:

{{ narrative }}

Provide a bulleted list of {{ what }}{% if detail %} {{ detail }}{% endif %}."""
)


@dataclass(frozen=True)
class Extraction:
    """A section pulled out of a narrative, with its keyword fallback"""

    name: str
    what: str
    keywords: tuple[str, ...]
    detail: str = ''

    def prompt(self, narrative: str) -> str:
        return EXTRACTION_PROMPT.render(what=self.what, detail=self.detail, narrative=narrative)


KEY_POINTS = Extraction('key_points', 'key discussion points', ('key', 'discussion', 'points'))
ACTION_ITEMS = Extraction(
    'action_items', 'action items', ('action', 'items', 'todo'), detail='with responsible parties if mentioned'
)
DECISIONS = Extraction('decisions', 'decisions made', ('decision', 'decided', 'agreed'))
KEY_ACHIEVEMENTS = Extraction(
    'key_achievements', 'key achievements', ('achiev', 'accomplish', 'deliver', 'complet', 'shipped')
)

MEETING_EXTRACTIONS = (KEY_POINTS, ACTION_ITEMS, DECISIONS)
SUMMARY_EXTRACTIONS = (KEY_ACHIEVEMENTS,)


def extract_by_keywords(text: str, keywords: tuple[str, ...]) -> str:
    """Keep the lines mentioning any keyword; never raises"""
    lowered = tuple(k.lower() for k in keywords)
    kept = [line.strip() for line in (text or '').splitlines() if any(k in line.lower() for k in lowered)]
    return '\n'.join(kept) if kept else NO_ITEMS_FOUND


def extract_section(generator: NarrativeGenerator, narrative: str, extraction: Extraction) -> str:
    try:
        extracted = generator.complete(extraction.prompt(narrative))
    except Exception as e:
        logger.warning(f'Failed to extract {extraction.name}, using keyword fallback: {e}')
        return extract_by_keywords(narrative, extraction.keywords)

    if not extracted or not extracted.strip():
        return extract_by_keywords(narrative, extraction.keywords)
    return extracted.strip()


def render_from_raw_input(
    generator: NarrativeGenerator,
    prompt: str,
    extractions: tuple[Extraction, ...] = (),
    fallback_narrative: str | None = None,
) -> DerivedFields:
    """Generate a narrative from `prompt`, then extract `extractions` from it.

    If the narrative call fails and no `fallback_narrative` is given, the
    failure is fatal and `GenerationFailedError` is raised. With a fallback
    (used on regeneration) the previous narrative is reused and the result
    is marked degraded. Extraction failures are never fatal.
    """
    degraded = False
    try:
        narrative = generator.complete(prompt)
    except Exception as e:
        if fallback_narrative is None:
            raise GenerationFailedError(f'Narrative generation failed: {e}') from e
        logger.warning(f'Narrative generation failed, keeping previous narrative: {e}')
        narrative, degraded = fallback_narrative, True

    sections: dict[str, str] = {}
    for extraction in extractions:
        if degraded:
            sections[extraction.name] = extract_by_keywords(narrative, extraction.keywords)
        else:
            sections[extraction.name] = extract_section(generator, narrative, extraction)

    return DerivedFields(narrative=narrative, sections=sections, degraded=degraded)
