"""
AI text generation through the Gemini REST API.

The API key never leaves the server: pages call ``generate_daily_briefing``
and ``ask_knowledge_base`` directly, and browser code goes through the
``/api/ai/`` proxy endpoint.
"""
import json
import logging
from typing import Optional

import requests
from django.conf import settings
from django.utils import timezone
from requests.exceptions import RequestException, Timeout

from .audit import log_system_event
from .encryption import decrypt_secret
from .exceptions import AIServiceError

logger = logging.getLogger('pharmadesk')

MISSING_KEY_MESSAGE = "API key is not configured on the server."

KNOWLEDGE_BASE_INSTRUCTION = (
    "You are an expert assistant for a pharmacy. Your sole purpose is to answer questions "
    "based ONLY on the provided text from a knowledge base document. Do not use any external "
    "knowledge. If the answer cannot be found in the document, you must state that you cannot "
    "find the information in the provided resource. Be friendly and professional."
)

BRIEFING_PROMPT = """
As the pharmacy manager, create a concise daily briefing for the team based on the following task list and user data.
The briefing should be formatted in markdown.
Today's date is {today}.

Highlight these key areas:
1.  **Urgent & Overdue Tasks:** List any tasks that are overdue or have an "URGENT" priority. Mention who is assigned.
2.  **Today's Priorities:** List tasks due today, grouped by priority (Urgent, Important, General).
3.  **Upcoming Deadlines:** Briefly mention any important tasks due in the next 2 days.
4.  **Team Focus:** Note any unassigned tasks that need attention.

Keep it professional, clear, and actionable.

**Task Data (JSON):**
{tasks}

**User Data (JSON):**
{users}
"""


class GeminiClient:
    """Minimal client for the ``generateContent`` endpoint. One call, no retries."""

    def __init__(self, api_key: str, model: str, base_url: str, timeout: int = 30,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, session=None):
        """
        Build a client from the admin-editable SystemSettings, falling back to
        the GEMINI_* environment settings.
        """
        from .models import SystemSettings

        system_settings = SystemSettings.load()
        api_key = decrypt_secret(system_settings.encrypted_ai_api_key) or settings.GEMINI_API_KEY
        if not api_key:
            raise AIServiceError(MISSING_KEY_MESSAGE)
        return cls(
            api_key=api_key,
            model=system_settings.ai_model or settings.GEMINI_MODEL,
            base_url=settings.GEMINI_API_URL,
            timeout=settings.AI_REQUEST_TIMEOUT,
            session=session,
        )

    def generate_content(self, contents: str, system_instruction: Optional[str] = None) -> str:
        body = {'contents': [{'role': 'user', 'parts': [{'text': contents}]}]}
        if system_instruction:
            body['systemInstruction'] = {'parts': [{'text': system_instruction}]}

        url = f"{self.base_url}/models/{self.model}:generateContent"
        try:
            response = self.session.post(
                url,
                json=body,
                headers={'x-goog-api-key': self.api_key, 'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
        except Timeout:
            raise AIServiceError("The AI service did not respond in time.")
        except RequestException as e:
            raise AIServiceError(f"Could not reach the AI service: {e}")

        if response.status_code != 200:
            try:
                detail = response.json().get('error', {}).get('message', '')
            except ValueError:
                detail = response.text[:200]
            raise AIServiceError(detail or f"AI service returned HTTP {response.status_code}")

        try:
            data = response.json()
            parts = data['candidates'][0]['content']['parts']
        except (ValueError, KeyError, IndexError, TypeError):
            raise AIServiceError("The AI service returned an empty response.")
        return ''.join(part.get('text', '') for part in parts)


def _task_payload(task):
    if isinstance(task, dict):
        return task
    return {
        'id': str(task.pk),
        'title': task.title,
        'status': task.status,
        'priority': task.priority,
        'deadline': task.deadline.isoformat() if task.deadline else None,
        'assigneeIds': [str(pk) for pk in task.assignee_ids],
        'checklist': [
            {'text': item['text'], 'isCompleted': item['is_completed']} for item in task.checklist or []
        ],
    }


def _member_payload(member):
    if isinstance(member, dict):
        return {'id': str(member.get('id', '')), 'name': member.get('name', '')}
    return {'id': str(member.pk), 'name': member.name}


def _generate(client, source, contents, system_instruction=None, organization=None):
    try:
        client = client or GeminiClient.from_settings()
        return client.generate_content(contents, system_instruction=system_instruction)
    except AIServiceError as e:
        log_system_event('ERROR', source, f"AI request failed: {e}", organization=organization)
        raise


def generate_daily_briefing(tasks, members, client=None, organization=None) -> str:
    prompt = BRIEFING_PROMPT.format(
        today=timezone.localdate().strftime('%a %b %d %Y'),
        tasks=json.dumps([_task_payload(t) for t in tasks], indent=2),
        users=json.dumps([_member_payload(m) for m in members], indent=2),
    )
    return _generate(client, 'DailyBriefing', prompt, organization=organization)


def ask_knowledge_base(question, context, client=None, organization=None) -> str:
    contents = f"DOCUMENT CONTENT:\n---\n{context}\n---\n\nQUESTION: {question}"
    return _generate(client, 'KnowledgeBase', contents,
                     system_instruction=KNOWLEDGE_BASE_INSTRUCTION, organization=organization)
