"""
Insight cards for a stored MetricRecord.

Uses OpenAI when configured; otherwise (or when the call fails) falls back to
threshold rules so every processed upload gets cards.
"""
import logging
from decimal import Decimal
from typing import Dict, List

from campaign_metrics.database import get_session
from campaign_metrics.models.insight import Insight
from campaign_metrics.pipeline.base import MetricSummary
from campaign_metrics.services import openai_client

logger = logging.getLogger('services.insights')

# Benchmarks for the rule-based cards (percent)
GOOD_CTR = Decimal('2.00')
GOOD_CONVERSION_RATE = Decimal('5.00')
LOW_CONVERSION_RATE = Decimal('2.00')


def _conversion_card(s: MetricSummary) -> Dict[str, str]:
    if s.total_clicks == 0:
        return {
            'title': 'No clicks recorded',
            'content': 'None of the rows recorded a click, so conversion rate is 0%. '
                       'Check that ads are running and that tracking is set up.',
            'category': 'conversion',
        }
    if s.conversion_rate >= GOOD_CONVERSION_RATE:
        return {
            'title': 'Strong conversion rate',
            'content': f'{s.conversion_rate}% of clicks converted. Consider shifting budget '
                       f'toward these campaigns to scale what already works.',
            'category': 'conversion',
        }
    if s.conversion_rate >= LOW_CONVERSION_RATE:
        return {
            'title': 'Conversion rate on par',
            'content': f'{s.conversion_rate}% of clicks converted. Landing-page tests could '
                       f'push this above {GOOD_CONVERSION_RATE}%.',
            'category': 'conversion',
        }
    return {
        'title': 'Conversion rate needs attention',
        'content': f'Only {s.conversion_rate}% of clicks converted. Review landing pages '
                   f'and offer alignment with the ad creative.',
        'category': 'conversion',
    }


def _audience_card(s: MetricSummary) -> Dict[str, str]:
    if s.total_impressions == 0:
        return {
            'title': 'No impressions recorded',
            'content': 'The upload has no impressions, so click-through rate is 0%.',
            'category': 'audience',
        }
    if s.click_through_rate >= GOOD_CTR:
        return {
            'title': 'Ads resonate with the audience',
            'content': f'Click-through rate is {s.click_through_rate}%, above the '
                       f'{GOOD_CTR}% benchmark. Current targeting is working.',
            'category': 'audience',
        }
    return {
        'title': 'Low click-through rate',
        'content': f'Click-through rate is {s.click_through_rate}%. Refresh creative or '
                   f'narrow targeting to reach a more relevant audience.',
        'category': 'audience',
    }


def _spend_card(s: MetricSummary) -> Dict[str, str]:
    if s.total_cost == 0:
        return {
            'title': 'No spend recorded',
            'content': 'Cost is 0 across all rows, so ROI cannot be measured.',
            'category': 'spend',
        }
    if s.roi >= 0:
        return {
            'title': 'Campaigns are profitable',
            'content': f'ROI is {s.roi}% at an average cost per click of ${s.average_cpc}. '
                       f'Revenue covers spend with room to grow.',
            'category': 'spend',
        }
    return {
        'title': 'Spend exceeds revenue',
        'content': f'ROI is {s.roi}% at an average cost per click of ${s.average_cpc}. '
                   f'Pause the weakest campaigns or lower bids.',
        'category': 'spend',
    }


def rule_based_insights(summary: MetricSummary) -> List[Dict[str, str]]:
    """Deterministic cards from threshold rules."""
    return [_conversion_card(summary), _audience_card(summary), _spend_card(summary)]


def build_insights(summary: MetricSummary) -> List[Dict[str, str]]:
    """AI cards when available and non-empty, rule-based cards otherwise."""
    if openai_client.is_available():
        try:
            cards = openai_client.generate_metric_insights(summary.to_dict())
            if cards:
                return cards
            logger.warning("OpenAI returned no usable insights, using rules")
        except Exception as e:
            logger.warning("OpenAI insight generation failed, using rules: %s", e)
    return rule_based_insights(summary)


def save_insights(user_id: int, metric_id: int, cards: List[Dict[str, str]]) -> int:
    """Replace the insights for a metric record. Returns the number saved."""
    session = get_session()
    try:
        session.query(Insight).filter(Insight.metric_id == metric_id).delete(synchronize_session=False)
        for card in cards:
            session.add(Insight(
                user_id=user_id,
                metric_id=metric_id,
                title=card['title'],
                content=card['content'],
                category=card['category'],
            ))
        session.commit()
        return len(cards)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def generate_insights(record, summary: MetricSummary) -> int:
    """Build and persist insight cards for a freshly stored record."""
    cards = build_insights(summary)
    count = save_insights(record.user_id, record.id, cards)
    logger.info("Saved %d insight(s) for metric record %s", count, record.id)
    return count
