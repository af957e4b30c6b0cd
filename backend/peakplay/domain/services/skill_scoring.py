"""
Scores composites des skills.

Normalisation : chaque mesure brute est ramenee sur [0, 100] par interpolation
lineaire entre deux bornes fixes (ou autour d'une valeur optimale pour la
nutrition), puis bornee. Les composites moyennent les mesures presentes d'une
categorie; une categorie sans mesure vaut 0.

Les fonctions acceptent un objet Skills ou un dict (cles snake_case).
"""
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple


# Technique : 26 gestes notes de 0 a 10 (batting, bowling, fielding)
TECHNIQUE_FIELDS: Tuple[str, ...] = (
    "batting_grip", "batting_stance", "batting_balance", "cocking_of_wrist", "back_lift",
    "top_hand_dominance", "high_elbow", "running_between_wickets", "calling",
    "bowling_grip", "run_up", "back_foot_landing", "front_foot_landing", "hip_drive",
    "back_foot_drag", "non_bowling_arm", "release", "follow_through",
    "positioning_of_ball", "pick_up", "aim", "throw", "soft_hands", "receiving",
    "high_catch", "flat_catch",
)

TACTICAL_FIELDS: Tuple[str, ...] = (
    "aim", "calling", "running_between_wickets", "soft_hands",
    "top_hand_dominance", "pick_up", "throw", "receiving",
    "flat_catch", "high_catch",
)


def read_metric(skills: Any, field: str) -> Optional[float]:
    """Lit une mesure sur un objet Skills ou un dict; None si absente."""
    if skills is None:
        return None
    if isinstance(skills, dict):
        value = skills.get(field)
    else:
        value = getattr(skills, field, None)
    if value is None:
        return None
    return float(value)


def _clamp(value: float) -> float:
    return min(100.0, max(0.0, value))


def _around_optimal(value: float, optimal: float, step: float) -> float:
    """Sous l'optimal : proportion lineaire. Au-dessus : -20 points par `step`."""
    if value < optimal:
        return _clamp(value / optimal * 100)
    return _clamp(100 - (value - optimal) / step * 20)


# ============ NORMALISATION ============

def normalize_count(count: float) -> float:
    """Pompes / tractions : valeur directe."""
    return _clamp(count)


def normalize_vertical_jump(cm: float) -> float:
    # 30 cm -> 0, 80 cm -> 100
    return _clamp((cm - 30) / 50 * 100)


def normalize_grip_strength(kg: float) -> float:
    # 20 kg -> 0, 60 kg -> 100
    return _clamp((kg - 20) / 40 * 100)


def normalize_sprint_time(seconds: float) -> float:
    # 10 s -> 0, 6 s -> 100
    return _clamp((10 - seconds) / 4 * 100)


def normalize_shuttle_run(seconds: float) -> float:
    # 25 s -> 0, 15 s -> 100
    return _clamp((25 - seconds) / 10 * 100)


def normalize_5k_time(minutes: float) -> float:
    # 30 min -> 0, 18 min -> 100
    return _clamp((30 - minutes) / 12 * 100)


def normalize_yoyo_test(level: float) -> float:
    return _clamp(level / 21 * 100)


def normalize_protein(grams: float) -> float:
    return _around_optimal(grams, optimal=100, step=50)


def normalize_carbs(grams: float) -> float:
    return _around_optimal(grams, optimal=300, step=100)


def normalize_fats(grams: float) -> float:
    return _around_optimal(grams, optimal=75, step=25)


def normalize_water_intake(liters: float) -> float:
    if liters < 3:
        return _clamp(liters / 3 * 100)
    return _clamp(100 - (liters - 3) * 10)


def normalize_calories(calories: float) -> float:
    return _around_optimal(calories, optimal=2500, step=500)


PHYSICAL_METRICS: List[Tuple[str, Callable[[float], float]]] = [
    ("pushup_score", normalize_count),
    ("pullup_score", normalize_count),
    ("vertical_jump", normalize_vertical_jump),
    ("grip_strength", normalize_grip_strength),
    ("sprint_50m", normalize_sprint_time),
    ("shuttle_run", normalize_shuttle_run),
    ("run_5k_time", normalize_5k_time),
    ("yoyo_test", normalize_yoyo_test),
]

NUTRITION_METRICS: List[Tuple[str, Callable[[float], float]]] = [
    ("protein", normalize_protein),
    ("carbohydrates", normalize_carbs),
    ("fats", normalize_fats),
    ("water_intake", normalize_water_intake),
    ("total_calories", normalize_calories),
]


# ============ COMPOSITES ============

def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _normalized(skills: Any, metrics: List[Tuple[str, Callable[[float], float]]]) -> List[float]:
    scores = []
    for field, normalize in metrics:
        value = read_metric(skills, field)
        if value is not None:
            scores.append(normalize(value))
    return scores


def calculate_physical_score(skills: Any) -> float:
    return _mean(_normalized(skills, PHYSICAL_METRICS))


def calculate_nutrition_score(skills: Any) -> float:
    return _mean(_normalized(skills, NUTRITION_METRICS))


def calculate_mental_score(skills: Any) -> float:
    """Humeur et sommeil sont notes de 1 a 10."""
    scores = [
        value * 10
        for value in (read_metric(skills, "mood_score"), read_metric(skills, "sleep_score"))
        if value is not None
    ]
    return _mean(scores)


def calculate_wellness_score(skills: Any) -> float:
    """Moyenne physique / nutrition / mental en ignorant les categories a 0."""
    parts = [
        calculate_physical_score(skills),
        calculate_nutrition_score(skills),
        calculate_mental_score(skills),
    ]
    return _mean([score for score in parts if score > 0])


def calculate_technique_score(skills: Any) -> float:
    scores = []
    for field in TECHNIQUE_FIELDS:
        value = read_metric(skills, field)
        if value is not None and value > 0:
            scores.append(value / 10 * 100)
    return float(round(_mean(scores))) if scores else 0.0


def calculate_tactical_score(skills: Any) -> float:
    scores = [
        value * 10
        for value in (read_metric(skills, field) for field in TACTICAL_FIELDS)
        if value is not None
    ]
    return _mean(scores)


@dataclass
class CompositeScores:
    physical_score: float
    nutrition_score: float
    mental_score: float
    wellness_score: float
    technique_score: float
    tactical_score: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_composite_scores(skills: Any) -> CompositeScores:
    """Calcule les six scores composites d'un instantane de skills."""
    return CompositeScores(
        physical_score=calculate_physical_score(skills),
        nutrition_score=calculate_nutrition_score(skills),
        mental_score=calculate_mental_score(skills),
        wellness_score=calculate_wellness_score(skills),
        technique_score=calculate_technique_score(skills),
        tactical_score=calculate_tactical_score(skills),
    )
