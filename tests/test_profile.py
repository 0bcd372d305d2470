import pytest

from api.models import TherapyInsights
from api.services.profile import ProfileSynthesizer, SYSTEM_PROMPT

NEW_INSIGHTS = TherapyInsights(
    title='Preparing For A Big Presentation',
    summary='You discussed presentation anxiety.',
    goals=['Practice with a colleague'],
    themes=['work anxiety'],
    bio='The client fears public speaking.'
)

MERGED_OUTPUT = """Title:
Building Confidence At Work

Bio:
A conscientious person who is working through anxiety about public speaking.

TherapySummary:
You have been exploring work stress. You've started preparing for your presentation.

Goals:
- Practice with a colleague
- Sleep earlier
- practice with a colleague

Themes:
- work anxiety
- sleep
- Work Anxiety"""


@pytest.mark.asyncio
async def test_merge_call_contains_old_and_new_data(llm):
    llm.chat_replies(MERGED_OUTPUT)
    synthesizer = ProfileSynthesizer(llm.openai_client)

    await synthesizer.synthesize(
        old_bio='A thoughtful person under stress.',
        old_summary='You have been exploring work stress.',
        old_goals=['Sleep earlier'],
        old_themes=['work stress', 'sleep'],
        new_insights=NEW_INSIGHTS
    )

    assert llm.client.chat.completions.create.call_count == 1
    messages = llm.client.chat.completions.create.call_args.kwargs['messages']
    assert messages[0]['content'] == SYSTEM_PROMPT
    prompt = messages[1]['content']
    old_part, new_part = prompt.split('New Session Data:')
    assert 'Bio: A thoughtful person under stress.' in old_part
    assert 'Goals: Sleep earlier' in old_part
    assert 'Themes: work stress, sleep' in old_part
    assert 'Bio: The client fears public speaking.' in new_part
    assert 'Goals: Practice with a colleague' in new_part
    assert 'Themes: work anxiety' in new_part


@pytest.mark.asyncio
async def test_returns_model_order_with_new_goals_first(llm):
    llm.chat_replies(MERGED_OUTPUT)
    synthesizer = ProfileSynthesizer(llm.openai_client)

    merged = await synthesizer.synthesize('', '', ['Sleep earlier'], ['sleep'], NEW_INSIGHTS)

    assert merged.goals == ['Practice with a colleague', 'Sleep earlier']
    assert merged.goals.index('Practice with a colleague') < merged.goals.index('Sleep earlier')
    assert merged.themes == ['work anxiety', 'sleep']
    assert merged.title == 'Building Confidence At Work'
    assert merged.summary.startswith('You have been exploring work stress.')
    assert merged.bio.startswith('A conscientious person')


@pytest.mark.asyncio
async def test_empty_profile_is_sent_as_blank_fields(llm):
    llm.chat_replies(MERGED_OUTPUT)
    synthesizer = ProfileSynthesizer(llm.openai_client)

    await synthesizer.synthesize('', '', [], [], TherapyInsights())

    prompt = llm.chat_prompts()[0]
    assert 'Goals: \n' in prompt
    assert 'Themes: \n' in prompt
