"""
OpenAI API helpers — narrative insight cards from computed campaign metrics.
"""
import json
import logging
from typing import Dict, List

from campaign_metrics.config import OPENAI_MODEL, INSIGHT_CATEGORIES
from campaign_metrics.extensions import openai_client as client

logger = logging.getLogger('services.openai')

MAX_INSIGHTS = 3


def is_available() -> bool:
    return client is not None


def _chat_completion(**kwargs):
    """Route chat completion through the OpenAI circuit breaker."""
    from campaign_metrics.services.circuit_breaker import get_breaker
    cb = get_breaker('openai')
    return cb.call(client.chat.completions.create, **kwargs)


def _build_prompt(metrics: Dict[str, str]) -> str:
    return f"""You are a performance-marketing analyst. Review these campaign totals
from a CSV upload and write short, specific insight cards for the client.

METRICS:
- Impressions: {metrics['totalImpressions']}
- Clicks: {metrics['totalClicks']}
- Conversions: {metrics['totalConversions']}
- Cost: ${metrics['totalCost']}
- Revenue: ${metrics['totalRevenue']}
- Click-through rate: {metrics['clickThroughRate']}%
- Conversion rate: {metrics['conversionRate']}%
- Average cost per click: ${metrics['averageCpc']}
- ROI: {metrics['roi']}%

Write at most {MAX_INSIGHTS} insights. Each has a title (under 8 words), content
(1-2 sentences with a concrete recommendation) and a category from:
{', '.join(INSIGHT_CATEGORIES)}.

Respond in JSON:
{{
  "insights": [
    {{"title": "...", "content": "...", "category": "conversion"}}
  ]
}}"""


def generate_metric_insights(metrics: Dict[str, str]) -> List[Dict[str, str]]:
    """
    Ask the model for insight cards.

    `metrics` is MetricSummary.to_dict(). Cards with an unknown category or
    missing text are dropped. Raises on API or decoding errors so the caller
    can fall back to the built-in rules.
    """
    response = _chat_completion(
        model=OPENAI_MODEL,
        messages=[{"role": "user", "content": _build_prompt(metrics)}],
        response_format={"type": "json_object"},
        temperature=0.3,
    )
    result = json.loads(response.choices[0].message.content)

    cards = []
    for item in result.get('insights', []):
        if not isinstance(item, dict):
            continue
        title = str(item.get('title', '')).strip()
        content = str(item.get('content', '')).strip()
        category = str(item.get('category', '')).strip().lower()
        if not title or not content or category not in INSIGHT_CATEGORIES:
            logger.debug("Dropping malformed insight card: %s", item)
            continue
        cards.append({'title': title, 'content': content, 'category': category})
    return cards[:MAX_INSIGHTS]
