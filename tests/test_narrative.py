import json

import httpx
import pytest
from conftest import FakeGenerator, RaisingGenerator

from workdigest.errors import CollaboratorUnavailableError, GenerationFailedError
from workdigest.narrative import (
    ACTION_ITEMS,
    DECISIONS,
    KEY_ACHIEVEMENTS,
    KEY_POINTS,
    MEETING_EXTRACTIONS,
    MEETING_MINUTES_PROMPT,
    NO_ITEMS_FOUND,
    NarrativeGenerator,
    OllamaNarrativeGenerator,
    extract_by_keywords,
    extract_section,
    render_from_raw_input,
)

MINUTES = """Meeting summary: quarterly planning.
Key discussion points: hiring and the billing migration.
Action items: Bob to draft the migration RFC.
The team decided to freeze deploys on Fridays."""


def test_keyword_fallback_keeps_matching_lines():
    assert extract_by_keywords(MINUTES, ACTION_ITEMS.keywords) == 'Action items: Bob to draft the migration RFC.'
    assert extract_by_keywords(MINUTES, DECISIONS.keywords) == 'The team decided to freeze deploys on Fridays.'


def test_keyword_fallback_is_case_insensitive():
    assert extract_by_keywords('TODO: write docs\nnothing here', ('todo',)) == 'TODO: write docs'


def test_keyword_fallback_without_match_uses_sentinel():
    assert extract_by_keywords('We talked about the weather.', KEY_ACHIEVEMENTS.keywords) == NO_ITEMS_FOUND
    assert extract_by_keywords('', ACTION_ITEMS.keywords) == NO_ITEMS_FOUND


def test_extract_section_uses_generator_reply():
    generator = FakeGenerator(reply='  - Bob drafts the RFC  ')
    assert extract_section(generator, MINUTES, ACTION_ITEMS) == '- Bob drafts the RFC'
    assert 'Extract only the action items' in generator.prompts[0]
    assert 'with responsible parties if mentioned' in generator.prompts[0]


def test_extract_section_falls_back_on_error():
    assert extract_section(RaisingGenerator(), MINUTES, KEY_POINTS) == (
        'Key discussion points: hiring and the billing migration.'
    )


def test_extract_section_falls_back_on_blank_reply():
    assert extract_section(FakeGenerator(reply='\n  '), MINUTES, DECISIONS) == (
        'The team decided to freeze deploys on Fridays.'
    )


def test_render_from_raw_input_fills_every_extraction():
    generator = FakeGenerator(reply=MINUTES)
    derived = render_from_raw_input(generator, 'prompt', MEETING_EXTRACTIONS)

    assert derived.narrative == MINUTES
    assert set(derived.sections) == {'key_points', 'action_items', 'decisions'}
    assert not derived.degraded
    assert len(generator.prompts) == 1 + len(MEETING_EXTRACTIONS)


def test_initial_narrative_failure_is_fatal():
    with pytest.raises(GenerationFailedError):
        render_from_raw_input(RaisingGenerator(), 'prompt', MEETING_EXTRACTIONS)


def test_narrative_failure_with_fallback_degrades_to_keywords():
    generator = RaisingGenerator()
    derived = render_from_raw_input(generator, 'prompt', MEETING_EXTRACTIONS, fallback_narrative=MINUTES)

    assert derived.degraded
    assert derived.narrative == MINUTES
    assert derived.sections['action_items'] == 'Action items: Bob to draft the migration RFC.'
    assert all(derived.sections.values())
    # only the narrative call reached the generator
    assert generator.calls == 1


def test_minutes_prompt_lists_attendees():
    prompt = MEETING_MINUTES_PROMPT.render(attendees=['alice', 'bob'], transcript='hello')
    assert 'Meeting Attendees: alice, bob' in prompt
    assert 'Meeting Attendees' not in MEETING_MINUTES_PROMPT.render(attendees=[], transcript='hello')


def test_fakes_satisfy_generator_protocol():
    assert isinstance(FakeGenerator(), NarrativeGenerator)
    assert isinstance(OllamaNarrativeGenerator(), NarrativeGenerator)


def test_ollama_generate_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['path'] = request.url.path
        seen['body'] = json.loads(request.content)
        return httpx.Response(200, json={'response': 'A productive day.', 'done': True})

    generator = OllamaNarrativeGenerator(model='mistral', transport=httpx.MockTransport(handler))

    assert generator.complete('Summarize this') == 'A productive day.'
    assert seen['path'] == '/api/generate'
    assert seen['body']['model'] == 'mistral'
    assert seen['body']['prompt'] == 'Summarize this'
    assert seen['body']['stream'] is False


@pytest.mark.parametrize(
    'response',
    [
        httpx.Response(500, text='model not loaded'),
        httpx.Response(200, json={'unexpected': True}),
    ],
)
def test_ollama_failures_raise_collaborator_unavailable(response):
    generator = OllamaNarrativeGenerator(transport=httpx.MockTransport(lambda request: response))
    with pytest.raises(CollaboratorUnavailableError):
        generator.complete('Summarize this')


def test_ollama_availability():
    up = OllamaNarrativeGenerator(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={'models': []})))
    down = OllamaNarrativeGenerator(transport=httpx.MockTransport(lambda r: httpx.Response(503)))

    assert up.is_available()
    assert not down.is_available()
