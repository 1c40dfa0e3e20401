import json
from datetime import datetime, timezone as dt_timezone

from django.test import TestCase, override_settings
from requests.exceptions import ConnectionError, Timeout

from pharmadesk import ai
from pharmadesk.encryption import encrypt_data
from pharmadesk.exceptions import AIServiceError
from pharmadesk.models import SystemLog, SystemSettings

from .fakes import FakeMember, FakeResponse, FakeSession, FakeTask, gemini_payload


def client_with(session):
    return ai.GeminiClient(api_key='test-key', model='gemini-test',
                           base_url='https://ai.example.com/v1beta/', session=session)


class GeminiClientTests(TestCase):

    def test_posts_prompt_with_key_header(self):
        session = FakeSession(FakeResponse(payload=gemini_payload("All good")))
        text = client_with(session).generate_content("Hello", system_instruction="Be brief")

        self.assertEqual(text, "All good")
        post = session.posts[0]
        self.assertEqual(post['url'], 'https://ai.example.com/v1beta/models/gemini-test:generateContent')
        self.assertEqual(post['headers']['x-goog-api-key'], 'test-key')
        self.assertEqual(post['json']['contents'][0]['parts'][0]['text'], "Hello")
        self.assertEqual(post['json']['systemInstruction']['parts'][0]['text'], "Be brief")

    def test_joins_multiple_parts(self):
        payload = {'candidates': [{'content': {'parts': [{'text': 'a'}, {'text': 'b'}]}}]}
        self.assertEqual(client_with(FakeSession(FakeResponse(payload=payload))).generate_content('x'), 'ab')

    def test_http_error_carries_service_message(self):
        response = FakeResponse(status_code=400, payload={'error': {'message': 'API key not valid'}})
        with self.assertRaisesMessage(AIServiceError, 'API key not valid'):
            client_with(FakeSession(response)).generate_content('x')

    def test_empty_response(self):
        with self.assertRaises(AIServiceError):
            client_with(FakeSession(FakeResponse(payload={'candidates': []}))).generate_content('x')

    def test_network_errors(self):
        for error in (Timeout(), ConnectionError('refused')):
            with self.assertRaises(AIServiceError):
                client_with(FakeSession(error=error)).generate_content('x')


class ClientConfigurationTests(TestCase):

    @override_settings(GEMINI_API_KEY='')
    def test_missing_key(self):
        with self.assertRaisesMessage(AIServiceError, ai.MISSING_KEY_MESSAGE):
            ai.GeminiClient.from_settings()

    @override_settings(GEMINI_API_KEY='env-key', GEMINI_MODEL='gemini-env')
    def test_environment_fallback(self):
        client = ai.GeminiClient.from_settings()
        self.assertEqual(client.api_key, 'env-key')
        self.assertEqual(client.model, 'gemini-env')

    @override_settings(GEMINI_API_KEY='env-key')
    def test_admin_settings_take_precedence(self):
        system_settings = SystemSettings.load()
        system_settings.ai_model = 'gemini-admin'
        system_settings.encrypted_ai_api_key = encrypt_data('admin-key')
        system_settings.save()

        client = ai.GeminiClient.from_settings()
        self.assertEqual(client.api_key, 'admin-key')
        self.assertEqual(client.model, 'gemini-admin')


class GenerationTests(TestCase):

    def test_daily_briefing_prompt_contains_tasks_and_users(self):
        session = FakeSession(FakeResponse(payload=gemini_payload("## Briefing")))
        alice = FakeMember(name="Alice")
        task = FakeTask(
            title="Order insulin",
            deadline=datetime(2024, 1, 10, 9, tzinfo=dt_timezone.utc),
            assignee_ids=[alice.pk],
            priority='URGENT',
            checklist=[{'id': 'a', 'text': 'Call', 'is_completed': False}],
        )

        report = ai.generate_daily_briefing([task], [alice], client=client_with(session))

        self.assertEqual(report, "## Briefing")
        prompt = session.posts[0]['json']['contents'][0]['parts'][0]['text']
        self.assertIn('"title": "Order insulin"', prompt)
        self.assertIn('"name": "Alice"', prompt)
        self.assertNotIn('systemInstruction', session.posts[0]['json'])

    def test_daily_briefing_accepts_plain_payloads(self):
        session = FakeSession()
        ai.generate_daily_briefing([{'title': 'From browser'}], [{'id': 1, 'name': 'Bob'}],
                                   client=client_with(session))
        prompt = session.posts[0]['json']['contents'][0]['parts'][0]['text']
        self.assertIn('From browser', prompt)
        self.assertIn(json.dumps('Bob'), prompt)

    def test_knowledge_question_uses_document_only_instruction(self):
        session = FakeSession(FakeResponse(payload=gemini_payload("Between 2 and 8C")))
        answer = ai.ask_knowledge_base("Fridge range?", "Keep vaccines at 2-8C", client=client_with(session))

        self.assertEqual(answer, "Between 2 and 8C")
        body = session.posts[0]['json']
        self.assertIn("QUESTION: Fridge range?", body['contents'][0]['parts'][0]['text'])
        self.assertIn("Keep vaccines at 2-8C", body['contents'][0]['parts'][0]['text'])
        self.assertEqual(body['systemInstruction']['parts'][0]['text'], ai.KNOWLEDGE_BASE_INSTRUCTION)

    def test_failures_are_logged(self):
        with self.assertRaises(AIServiceError):
            ai.ask_knowledge_base("q", "ctx", client=client_with(FakeSession(error=Timeout())))
        log = SystemLog.objects.get()
        self.assertEqual(log.level, 'ERROR')
        self.assertEqual(log.source, 'KnowledgeBase')
