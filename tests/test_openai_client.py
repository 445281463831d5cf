import pytest
from unittest.mock import MagicMock

from lib.error_handler import AppError
from lib.openai_client import OpenAIClient

@pytest.fixture
def mock_openai():
    client = MagicMock()
    message = MagicMock(content='  Customer asked about the RTX 4090 and booked a repair.  ')
    client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])
    return client

@pytest.mark.asyncio
async def test_summarize_call(settings, mock_openai):
    summarizer = OpenAIClient(settings, client=mock_openai)
    summary = await summarizer.summarize_call([
        {'role': 'user', 'message': 'Do you have the RTX 4090?'},
        {'role': 'assistant', 'message': 'Yes, 5 in stock.'},
        {'role': 'system'}
    ])

    assert summary == 'Customer asked about the RTX 4090 and booked a repair.'
    kwargs = mock_openai.chat.completions.create.call_args.kwargs
    assert kwargs['model'] == settings.openai_summary_model
    assert kwargs['messages'][1]['content'] == 'user: Do you have the RTX 4090?\nassistant: Yes, 5 in stock.'

@pytest.mark.asyncio
async def test_empty_transcript_raises(settings, mock_openai):
    with pytest.raises(AppError) as exc:
        await OpenAIClient(settings, client=mock_openai).summarize_call('   ')
    assert exc.value.status_code == 400
    mock_openai.chat.completions.create.assert_not_called()

@pytest.mark.asyncio
async def test_api_failure_raises_app_error(settings, mock_openai):
    mock_openai.chat.completions.create.side_effect = Exception('rate limited')
    with pytest.raises(AppError) as exc:
        await OpenAIClient(settings, client=mock_openai).summarize_call('user: hi')
    assert 'rate limited' in exc.value.message
