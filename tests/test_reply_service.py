from simchat.models.core import Conversation, Message, MessageType
from simchat.services.reply_service import ReplyService, build_history
from simchat.services.session_manager import SessionManager
from simchat.utils.bedrock_llm import BedrockLLMError

ME = '10000001'
THEM = '10000002'


def _text(id_, sender, text):
    return Message(id=id_, sender_uid=sender, type=MessageType.TEXT, timestamp='10:00', text=text)


class StubLLM:

    def __init__(self, reply='Sure thing!', error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate_response(self, messages, system_prompt, **kwargs):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return self.reply


def test_history_roles_and_merging():
    conversation = Conversation(id=THEM,
                                messages=[
                                    _text('1', THEM, 'are you there?'),
                                    _text('2', ME, 'yes'),
                                    _text('3', ME, 'what is up'),
                                    Message(id='4', sender_uid=THEM, type=MessageType.IMAGE, timestamp='10:01'),
                                    _text('5', THEM, 'nothing much'),
                                    _text('6', ME, 'cool'),
                                ])
    turns = build_history(conversation, ME, 'cool')

    assert [t['role'] for t in turns] == ['user', 'assistant', 'user']
    assert turns[0]['content'][0]['text'] == 'yes\nwhat is up'
    assert turns[1]['content'][0]['text'] == 'nothing much'
    assert turns[2]['content'][0]['text'] == 'cool'


def test_history_for_empty_conversation():
    assert build_history(Conversation(id=THEM), ME, 'hello') == [{'role': 'user', 'content': [{'text': 'hello'}]}]


def test_get_reply_uses_llm():
    llm = StubLLM(reply='  Hi there!  ')
    service = ReplyService(llm=llm, fallback_text='sorry')
    assert service.get_reply(Conversation(id=THEM), ME, 'hello') == 'Hi there!'
    assert llm.calls[0][-1]['content'][0]['text'] == 'hello'


def test_get_reply_absorbs_failures():
    service = ReplyService(llm=StubLLM(error=BedrockLLMError('throttled')), fallback_text='sorry')
    assert service.get_reply(Conversation(id=THEM), ME, 'hello') == 'sorry'

    service = ReplyService(llm=StubLLM(error=RuntimeError('boom')), fallback_text='sorry')
    assert service.get_reply(Conversation(id=THEM), ME, 'hello') == 'sorry'

    service = ReplyService(llm=StubLLM(reply='   '), fallback_text='sorry')
    assert service.get_reply(Conversation(id=THEM), ME, 'hello') == 'sorry'


def test_session_suggest_reply(store):
    session = SessionManager.from_store(store, reply_service=ReplyService(llm=StubLLM(reply='hey!'), fallback_text='sorry'))
    session.start()
    alice = session.sign_up('Alice', 'secret').value
    bob = session.directory.create_account('Bob', 'secret')
    session.send_text(bob.uid, 'hello')

    result = session.suggest_reply(bob.uid, 'hello')
    assert result.success
    assert result.value == 'hey!'
    assert session.ledger.get(alice.uid, bob.uid).messages[-1].text == 'hello'
