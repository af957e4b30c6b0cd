"""
Initialisation des entites du domaine
Resout les imports circulaires entre les modeles
"""

# Import des modeles dans l'ordre correct pour eviter les imports circulaires
from .user import (
    User, UserRole, UserRead, RegisterRequest,
    Coach, CoachCreate, CoachRead,
    Student, StudentCreate, StudentRead,
)
from .team import Team, TeamMember
from .skills import Skills, SkillHistory, SkillsUpdate, SkillsRead, SkillHistoryRead, SKILL_FIELD_NAMES
from .action import Action, ActionCreate, ActionUpdate, ActionRead, ActionPriority, UploadMethod
from .feedback import Feedback, FeedbackCreate, FeedbackUpdate, FeedbackRead, FeedbackCategory, FeedbackPriority
from .badge import (
    Badge, BadgeCategory, BadgeRule, StudentBadge, RuleType, RuleOperator,
    BadgeProgress, BadgeRevokeRequest, BadgeEvaluateRequest,
    BadgeRuleInput, BadgeCreate, BadgeUpdate,
)
from .badge_evaluation_queue import BadgeEvaluationQueue, EvaluationStatus

__all__ = [
    "User", "UserRole", "UserRead", "RegisterRequest",
    "Coach", "CoachCreate", "CoachRead",
    "Student", "StudentCreate", "StudentRead",
    "Team", "TeamMember",
    "Skills", "SkillHistory", "SkillsUpdate", "SkillsRead", "SkillHistoryRead", "SKILL_FIELD_NAMES",
    "Action", "ActionCreate", "ActionUpdate", "ActionRead", "ActionPriority", "UploadMethod",
    "Feedback", "FeedbackCreate", "FeedbackUpdate", "FeedbackRead", "FeedbackCategory", "FeedbackPriority",
    "Badge", "BadgeCategory", "BadgeRule", "StudentBadge", "RuleType", "RuleOperator",
    "BadgeProgress", "BadgeRevokeRequest", "BadgeEvaluateRequest",
    "BadgeRuleInput", "BadgeCreate", "BadgeUpdate",
    "BadgeEvaluationQueue", "EvaluationStatus",
]
