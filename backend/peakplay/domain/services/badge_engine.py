"""
Evaluation des regles de badges sur un instantane de skills.

Module pur : aucune I/O base de donnees. Les regles et les skills sont fournis
par l'appelant (BadgeService), ce qui permet de reevaluer chaque badge a chaque
requete sans cout supplementaire.

progress = 100 * somme(poids des regles validees) / somme(poids)
earned   = toutes les regles obligatoires validees s'il y en a,
           sinon progress >= EARN_THRESHOLD
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from peakplay.domain.entities.base import to_camel
from peakplay.domain.entities.badge import RuleOperator, RuleType
from peakplay.domain.entities.skills import SKILL_FIELD_NAMES
from peakplay.domain.services.skill_scoring import read_metric

logger = logging.getLogger(__name__)

EARN_THRESHOLD = 80

# Moyenne technique utilisee par les regles SKILLS_AVERAGE
AVERAGE_FIELDS = (
    "batting_stance", "batting_grip", "batting_balance", "bowling_grip", "follow_through",
    "run_up", "flat_catch", "high_catch", "pick_up", "throw",
)

WELLNESS_FIELDS = ("water_intake", "sleep_score", "mood_score")
WELLNESS_MINIMUM = 7

_CAMEL_TO_FIELD = {to_camel(name): name for name in SKILL_FIELD_NAMES}


@dataclass
class BadgeEvaluation:
    progress: float
    earned: bool
    score: float


def resolve_field(field_name: str) -> str:
    """Les regles historiques utilisent des noms camelCase (ex. 'pushupScore', 'sprint50m')."""
    if field_name in SKILL_FIELD_NAMES:
        return field_name
    return _CAMEL_TO_FIELD.get(field_name, field_name)


def compare(value: float, operator: RuleOperator, target: str) -> bool:
    """Compare une valeur numerique a la cible textuelle de la regle."""
    op = operator if isinstance(operator, RuleOperator) else RuleOperator(operator.upper())
    if op == RuleOperator.BETWEEN:
        low, high = (float(part.strip()) for part in target.split(",", 1))
        return low <= value <= high

    threshold = float(target)
    if op == RuleOperator.GT:
        return value > threshold
    if op == RuleOperator.GTE:
        return value >= threshold
    if op == RuleOperator.LT:
        return value < threshold
    if op == RuleOperator.LTE:
        return value <= threshold
    if op == RuleOperator.EQ:
        return value == threshold
    if op == RuleOperator.NEQ:
        return value != threshold
    return False


def technical_average(skills: Any) -> Optional[float]:
    values = [read_metric(skills, field) for field in AVERAGE_FIELDS]
    present = [value for value in values if value is not None and value > 0]
    if not present:
        return None
    return sum(present) / len(present)


def evaluate_rule(rule: Any, skills: Any) -> bool:
    """Evalue une regle. Une mesure absente ou nulle fait echouer la regle."""
    rule_type = RuleType(rule.rule_type)

    if rule_type == RuleType.WELLNESS_STREAK:
        # Instantane courant uniquement (pas d'historique multi-jours)
        for field in WELLNESS_FIELDS:
            value = read_metric(skills, field)
            if value is None or value < WELLNESS_MINIMUM:
                return False
        return True

    if rule_type == RuleType.SKILLS_AVERAGE:
        value = technical_average(skills)
    else:
        value = read_metric(skills, resolve_field(rule.field_name))

    if value is None or value == 0:
        return False

    try:
        return compare(value, rule.operator, rule.value)
    except ValueError:
        logger.warning(f"Regle de badge invalide ignoree: {rule.field_name} {rule.operator} {rule.value!r}")
        return False


def evaluate_badge(rules: Iterable[Any], skills: Any) -> BadgeEvaluation:
    """Calcule la progression et l'obtention d'un badge pour un instantane de skills."""
    rules = list(rules)
    if skills is None or not rules:
        return BadgeEvaluation(progress=0, earned=False, score=0)

    total_weight = 0.0
    passed_weight = 0.0
    required_total = 0
    required_passed = 0

    for rule in rules:
        weight = float(rule.weight or 0)
        total_weight += weight
        passed = evaluate_rule(rule, skills)
        if rule.is_required:
            required_total += 1
            if passed:
                required_passed += 1
        if passed:
            passed_weight += weight

    progress = 100 * passed_weight / total_weight if total_weight > 0 else 0.0

    if required_total > 0:
        earned = required_passed == required_total
    else:
        earned = progress >= EARN_THRESHOLD

    return BadgeEvaluation(progress=round(progress, 2), earned=earned, score=passed_weight)


@dataclass
class RuleSpec:
    """Regle detachee de la session (catalogue mis en cache, tests)."""
    rule_type: str
    field_name: str
    operator: str
    value: str
    weight: float = 1.0
    is_required: bool = False
