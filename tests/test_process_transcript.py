import pytest

INSIGHTS_OUTPUT = """Title:
Preparing For A Big Presentation

Summary:
You discussed your anxiety about an upcoming presentation.

Goals:
- Practice with a colleague

Themes:
- work anxiety

Bio:
The client fears public speaking."""

MERGED_OUTPUT = """Title:
Building Confidence At Work

Bio:
A conscientious person working through anxiety about public speaking.

TherapySummary:
You have been exploring work stress and preparing for your presentation.

Goals:
- Practice with a colleague
- Sleep earlier

Themes:
- work anxiety
- sleep"""

REQUEST = {
    'userId': 'user-123',
    'conversationId': 'conv-456',
    'transcript': 'therapist: How are you?\nyou: Anxious about work.',
    'duration': 180
}


@pytest.fixture
def stored_session(fake_db, user):
    fake_db.tables['sessions'] = [{
        'id': 'session-1',
        'user_id': 'user-123',
        'conversation_id': 'conv-456',
        'title': 'Recent Session',
        'summary': 'Summarizing...',
        'transcript': '',
        'duration': None
    }]
    fake_db.tables['goals'] = [
        {'id': 'goal-1', 'user_id': 'user-123', 'title': 'sleep earlier', 'is_active': True}
    ]


def test_updates_session_profile_and_goals(test_client, fake_db, llm, stored_session):
    llm.chat_replies(INSIGHTS_OUTPUT, MERGED_OUTPUT)

    response = test_client.post('/ai-therapist/process-transcript', json=REQUEST)

    assert response.status_code == 200
    assert response.json['success'] is True
    assert response.json['title'] == 'Building Confidence At Work'
    assert response.json['goals'] == ['Practice with a colleague', 'Sleep earlier']

    session = fake_db.rows('sessions')[0]
    assert session['title'] == 'Building Confidence At Work'
    assert session['summary'] == 'You have been exploring work stress and preparing for your presentation.'
    assert session['transcript'] == REQUEST['transcript']
    assert session['duration'] == 180

    profile = fake_db.rows('users')[0]
    assert profile['bio'] == 'A conscientious person working through anxiety about public speaking.'
    assert profile['therapy_summary'] == session['summary']
    assert profile['themes'] == 'work anxiety, sleep'
    assert profile['goals'] == 'Practice with a colleague\nSleep earlier'

    # "Sleep earlier" already exists (case-insensitively) so only one goal is added
    titles = [g['title'] for g in fake_db.rows('goals')]
    assert titles == ['sleep earlier', 'Practice with a colleague']
    assert fake_db.rows('goals')[1]['is_active'] is True


def test_synthesis_receives_existing_goals_and_new_insights(test_client, llm, stored_session):
    llm.chat_replies(INSIGHTS_OUTPUT, MERGED_OUTPUT)

    test_client.post('/ai-therapist/process-transcript', json=REQUEST)

    insight_prompt, merge_prompt = llm.chat_prompts()
    assert REQUEST['transcript'] in insight_prompt
    assert 'Goals: sleep earlier' in merge_prompt
    assert 'Themes: work stress, sleep' in merge_prompt
    assert 'Summary: You discussed your anxiety about an upcoming presentation.' in merge_prompt


def test_only_the_matching_session_is_updated(test_client, fake_db, llm, stored_session):
    fake_db.tables['sessions'].append({
        'id': 'session-2', 'user_id': 'someone-else', 'conversation_id': 'conv-456', 'title': 'Other'
    })
    llm.chat_replies(INSIGHTS_OUTPUT, MERGED_OUTPUT)

    test_client.post('/ai-therapist/process-transcript', json=REQUEST)

    assert fake_db.rows('sessions')[1]['title'] == 'Other'


def test_goal_insert_failure_does_not_fail_request(test_client, fake_db, llm, stored_session):
    fake_db.failures.add(('goals', 'insert'))
    llm.chat_replies(INSIGHTS_OUTPUT, MERGED_OUTPUT)

    response = test_client.post('/ai-therapist/process-transcript', json=REQUEST)

    assert response.status_code == 200
    assert fake_db.rows('users')[0]['themes'] == 'work anxiety, sleep'


@pytest.mark.parametrize('missing', ['userId', 'conversationId', 'transcript'])
def test_missing_fields_are_rejected(test_client, fake_db, llm, missing):
    body = {k: v for k, v in REQUEST.items() if k != missing}

    response = test_client.post('/ai-therapist/process-transcript', json=body)

    assert response.status_code == 400
    assert response.json == {'error': 'Missing required fields'}
    assert fake_db.operations == []
    assert not llm.client.chat.completions.create.called


def test_unknown_user_is_not_found(test_client, llm):
    response = test_client.post('/ai-therapist/process-transcript', json=REQUEST)

    assert response.status_code == 404
    assert response.json == {'error': 'User not found'}
    assert not llm.client.chat.completions.create.called


def test_model_failure_returns_generic_error(test_client, fake_db, llm, stored_session):
    llm.client.chat.completions.create.side_effect = Exception("upstream timeout")

    response = test_client.post('/ai-therapist/process-transcript', json=REQUEST)

    assert response.status_code == 500
    assert response.json == {'error': 'Internal server error'}
    assert fake_db.rows('sessions')[0]['title'] == 'Recent Session'
