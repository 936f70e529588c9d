"""
成就触发器与分类

触发器 -> 需要重新评估的成就分类，纯查表，无副作用
"""

from enum import Enum
from typing import Dict, List, Union


class AchievementCategory(str, Enum):
    """成就分类"""
    REGISTROS = "REGISTROS"
    RACHAS = "RACHAS"
    NIVELES = "NIVELES"
    SOCIAL = "SOCIAL"
    CONTEXTOS = "CONTEXTOS"
    CONTROL = "CONTROL"
    ESPECIALES = "ESPECIALES"


class AchievementTrigger(str, Enum):
    """触发成就检查的领域事件"""
    GLUCOSE_LOGGED = "GLUCOSE_LOGGED"
    STREAK_UPDATED = "STREAK_UPDATED"
    LEVEL_UP = "LEVEL_UP"
    FRIEND_ADDED = "FRIEND_ADDED"
    STREAK_RECOVERED = "STREAK_RECOVERED"
    PREMIUM_ACTIVATED = "PREMIUM_ACTIVATED"
    SHARE_COMPLETED = "SHARE_COMPLETED"
    ENCOURAGEMENT_SENT = "ENCOURAGEMENT_SENT"


TRIGGER_CATEGORIES: Dict[AchievementTrigger, List[AchievementCategory]] = {
    AchievementTrigger.GLUCOSE_LOGGED: [
        AchievementCategory.REGISTROS,
        AchievementCategory.CONTEXTOS,
        AchievementCategory.CONTROL,
        AchievementCategory.ESPECIALES,
    ],
    AchievementTrigger.STREAK_UPDATED: [AchievementCategory.RACHAS],
    AchievementTrigger.LEVEL_UP: [AchievementCategory.NIVELES],
    AchievementTrigger.FRIEND_ADDED: [AchievementCategory.SOCIAL],
    AchievementTrigger.STREAK_RECOVERED: [AchievementCategory.ESPECIALES],
    AchievementTrigger.PREMIUM_ACTIVATED: [AchievementCategory.ESPECIALES],
    AchievementTrigger.SHARE_COMPLETED: [AchievementCategory.SOCIAL],
    AchievementTrigger.ENCOURAGEMENT_SENT: [AchievementCategory.SOCIAL],
}

# 分类展示名称（西班牙语，与客户端一致）
CATEGORY_NAMES: Dict[AchievementCategory, str] = {
    AchievementCategory.REGISTROS: "Registros",
    AchievementCategory.RACHAS: "Rachas",
    AchievementCategory.NIVELES: "Niveles",
    AchievementCategory.SOCIAL: "Social",
    AchievementCategory.CONTEXTOS: "Contextos",
    AchievementCategory.CONTROL: "Control Glucémico",
    AchievementCategory.ESPECIALES: "Especiales",
}

CATEGORY_DESCRIPTIONS: Dict[AchievementCategory, str] = {
    AchievementCategory.REGISTROS: "Logros por registrar glucemias",
    AchievementCategory.RACHAS: "Logros por mantener rachas de registro",
    AchievementCategory.NIVELES: "Logros por subir de nivel",
    AchievementCategory.SOCIAL: "Logros por interactuar con amigos",
    AchievementCategory.CONTEXTOS: "Logros por registrar en diferentes contextos",
    AchievementCategory.CONTROL: "Logros por mantener buen control glucémico",
    AchievementCategory.ESPECIALES: "Logros únicos y eventos especiales",
}

# 展示顺序
CATEGORY_ORDER: List[AchievementCategory] = [
    AchievementCategory.REGISTROS,
    AchievementCategory.RACHAS,
    AchievementCategory.NIVELES,
    AchievementCategory.CONTROL,
    AchievementCategory.CONTEXTOS,
    AchievementCategory.SOCIAL,
    AchievementCategory.ESPECIALES,
]


def categories_for_trigger(trigger: Union[AchievementTrigger, str]) -> List[str]:
    """触发器对应的成就分类，未知触发器返回空列表"""
    try:
        key = AchievementTrigger(trigger)
    except ValueError:
        return []
    return [category.value for category in TRIGGER_CATEGORIES[key]]


def category_metadata() -> List[Dict[str, str]]:
    """按展示顺序返回分类元数据"""
    return [
        {
            "code": category.value,
            "name": CATEGORY_NAMES[category],
            "description": CATEGORY_DESCRIPTIONS[category],
        }
        for category in CATEGORY_ORDER
    ]
