"""
Transcript Analysis Agent - summary, action items, sentiment and quality score for a recorded one-on-one
"""
from oneonone.agents.base_agent import BaseAgent
from oneonone.agents.transcript_analysis.prompts import (
    SYSTEM_PROMPT,
    ANALYSIS_PROMPT,
    ANALYSIS_RESPONSE_FORMAT
)
from typing import Dict, Any, List

PRIORITIES = ("HIGH", "MEDIUM", "LOW")
ASSIGNEES = ("employee", "reporter")
SENTIMENT_LABELS = ("positive", "neutral", "negative")


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


class TranscriptAnalysisAgent(BaseAgent):

    def __init__(self):
        super().__init__(name="TranscriptAnalysisAgent")

    async def analyze(
        self,
        transcript: str,
        employee_name: str,
        reporter_name: str
    ) -> Dict[str, Any]:
        """
        Analyze a transcript and return a normalized analysis dict
        """
        raw = await self.generate_structured_response(
            prompt=ANALYSIS_PROMPT.format(transcript=transcript),
            system_prompt=SYSTEM_PROMPT.format(employee_name=employee_name, reporter_name=reporter_name),
            response_format=ANALYSIS_RESPONSE_FORMAT
        )
        return self._normalize(raw)

    def _normalize(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        """Coerce model output into the stored shape; out-of-range values are clamped"""
        sentiment = raw.get("sentiment") or {}
        details = raw.get("quality_details") or {}

        label = str(sentiment.get("label", "neutral")).lower()
        return {
            "summary": str(raw.get("summary") or "").strip(),
            "key_points": [str(p) for p in raw.get("key_points") or []],
            "suggested_todos": self._normalize_todos(raw.get("suggested_todos") or []),
            "sentiment": {
                "score": _clamp(sentiment.get("score"), -1.0, 1.0, 0.0),
                "label": label if label in SENTIMENT_LABELS else "neutral",
                "employee_mood": sentiment.get("employee_mood", ""),
                "reporter_engagement": sentiment.get("reporter_engagement", ""),
                "overall_tone": sentiment.get("overall_tone", ""),
            },
            "quality_score": _clamp(raw.get("quality_score"), 1, 100, 50),
            "quality_details": {
                **{
                    key: _clamp(details.get(key), 1, 10, 5)
                    for key in ("clarity", "actionability", "engagement", "goal_alignment", "follow_up")
                },
                "overall_feedback": details.get("overall_feedback", ""),
            },
            "common_themes": [str(t) for t in raw.get("common_themes") or []],
        }

    def _normalize_todos(self, todos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        normalized = []
        for todo in todos:
            title = str(todo.get("title") or "").strip()
            if not title:
                continue
            priority = str(todo.get("priority", "MEDIUM")).upper()
            assign_to = str(todo.get("assign_to", "employee")).lower()
            normalized.append({
                "title": title,
                "description": todo.get("description", ""),
                "assign_to": assign_to if assign_to in ASSIGNEES else "employee",
                "priority": priority if priority in PRIORITIES else "MEDIUM",
            })
        return normalized

    async def process(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Implementation of BaseAgent.process"""
        return await self.analyze(
            context["transcript"],
            context["employee_name"],
            context["reporter_name"],
        )
