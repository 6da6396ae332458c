import pytest
from botocore.exceptions import ClientError

from simchat.utils import bedrock_llm
from simchat.utils.bedrock_llm import BedrockLLM, BedrockLLMError
from simchat.utils.config import BedrockLLMConfig

MESSAGES = [{'role': 'user', 'content': [{'text': 'hello'}]}]


def _config(retry_attempts=3):
    return BedrockLLMConfig(region='us-east-1',
                            model_id='test-model',
                            max_tokens=256,
                            temperature=0.5,
                            retry_attempts=retry_attempts,
                            retry_delay=0.0)


def _throttled():
    return ClientError({'Error': {'Code': 'ThrottlingException', 'Message': 'slow down'}}, 'Converse')


class FakeRuntime:
    """bedrock-runtime stand-in that replays a script of responses and errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def converse(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(bedrock_llm.time, 'sleep', delays.append)
    return delays


def test_converse_text_blocks_are_joined():
    runtime = FakeRuntime({'output': {'message': {'role': 'assistant', 'content': [{'text': 'Hi '}, {'text': 'there'}]}}})
    llm = BedrockLLM(_config(), client=runtime)

    assert llm.generate_response(MESSAGES, 'be brief', temperature=0.0) == 'Hi there'
    call = runtime.calls[0]
    assert call['modelId'] == 'test-model'
    assert call['system'] == [{'text': 'be brief'}]
    assert call['inferenceConfig'] == {'maxTokens': 256, 'temperature': 0.0}


def test_response_without_content_is_empty_text():
    llm = BedrockLLM(_config(), client=FakeRuntime({'output': {}}))
    assert llm.generate_response(MESSAGES, 'be brief') == ''


def test_client_errors_are_retried_with_backoff(no_sleep):
    runtime = FakeRuntime(_throttled(), _throttled(), {'output': {'message': {'content': [{'text': 'ok'}]}}})
    llm = BedrockLLM(_config(retry_attempts=3), client=runtime)

    assert llm.generate_response(MESSAGES, 'be brief') == 'ok'
    assert len(runtime.calls) == 3
    assert len(no_sleep) == 2


def test_exhausted_retries_raise():
    runtime = FakeRuntime(_throttled(), _throttled())
    llm = BedrockLLM(_config(retry_attempts=2), client=runtime)

    with pytest.raises(BedrockLLMError, match='after 2 attempts'):
        llm.generate_response(MESSAGES, 'be brief')
    assert len(runtime.calls) == 2


def test_unexpected_errors_are_not_retried():
    runtime = FakeRuntime(KeyError('output'), {'output': {}})
    llm = BedrockLLM(_config(), client=runtime)

    with pytest.raises(BedrockLLMError, match='Unexpected'):
        llm.generate_response(MESSAGES, 'be brief')
    assert len(runtime.calls) == 1


def test_health_check():
    ok = BedrockLLM(_config(), client=FakeRuntime({'output': {'message': {'content': [{'text': 'OK'}]}}}))
    assert ok.health_check() is True

    down = BedrockLLM(_config(retry_attempts=1), client=FakeRuntime(_throttled()))
    assert down.health_check() is False
