"""
内置成就目录

seed_achievements 按 code 写入，条件用模型声明再导出为存储格式
"""

from typing import Any, Dict, List

from rangexp.core.achievement_triggers import AchievementCategory
from rangexp.core.conditions import (
    AchievementCondition,
    ConsecutiveCondition,
    CountCondition,
    DateCondition,
    EventCondition,
    InRangeCondition,
    PercentageCondition,
    TimeWindowCondition,
    UserAttributeCondition,
)
from rangexp.database.models import AchievementTier, GlucoseContext


def _entry(
    code: str,
    name: str,
    description: str,
    category: AchievementCategory,
    tier: str,
    xp_reward: int,
    condition: AchievementCondition,
) -> Dict[str, Any]:
    return {
        "code": code,
        "name": name,
        "description": description,
        "category": category.value,
        "tier": tier,
        "xp_reward": xp_reward,
        "condition": condition.to_json(),
    }


ACHIEVEMENT_CATALOG: List[Dict[str, Any]] = [
    # 记录
    _entry(
        "FIRST_LOG", "Primer Registro", "Registra tu primera glucemia",
        AchievementCategory.REGISTROS, AchievementTier.BRONZE, 50,
        CountCondition(entity="glucose_readings", operator="gte", value=1),
    ),
    _entry(
        "READINGS_100", "Centenario", "Registra 100 glucemias",
        AchievementCategory.REGISTROS, AchievementTier.SILVER, 150,
        CountCondition(entity="glucose_readings", operator="gte", value=100),
    ),
    _entry(
        "READINGS_1000", "Mil Registros", "Registra 1000 glucemias",
        AchievementCategory.REGISTROS, AchievementTier.PLATINUM, 1000,
        CountCondition(entity="glucose_readings", operator="gte", value=1000),
    ),
    _entry(
        "7_READINGS_DAY", "Seguimiento Intensivo", "Registra 7 glucemias en un día",
        AchievementCategory.REGISTROS, AchievementTier.SILVER, 75,
        TimeWindowCondition(entity="glucose_readings", window="day", operator="gte", value=7),
    ),
    _entry(
        "READINGS_WEEK_20", "Semana Activa", "Registra 20 glucemias en una semana",
        AchievementCategory.REGISTROS, AchievementTier.SILVER, 100,
        TimeWindowCondition(entity="glucose_readings", window="week", operator="gte", value=20),
    ),
    # 连续打卡
    _entry(
        "WEEK_STREAK", "Una Semana de Constancia", "Mantén tu racha por 7 días",
        AchievementCategory.RACHAS, AchievementTier.SILVER, 100,
        UserAttributeCondition(attribute="streak", operator="gte", value=7),
    ),
    _entry(
        "MONTH_STREAK", "Mes de Disciplina", "Mantén tu racha por 30 días",
        AchievementCategory.RACHAS, AchievementTier.GOLD, 500,
        UserAttributeCondition(attribute="streak", operator="gte", value=30),
    ),
    _entry(
        "YEAR_STREAK", "Año Imparable", "Mantén tu racha por 365 días",
        AchievementCategory.RACHAS, AchievementTier.PLATINUM, 2000,
        ConsecutiveCondition(days=365),
    ),
    # 等级
    _entry(
        "LEVEL_5", "Aprendiz", "Alcanza el nivel 5",
        AchievementCategory.NIVELES, AchievementTier.BRONZE, 25,
        UserAttributeCondition(attribute="level", operator="gte", value=5),
    ),
    _entry(
        "LEVEL_10", "Experto", "Alcanza el nivel 10",
        AchievementCategory.NIVELES, AchievementTier.GOLD, 250,
        UserAttributeCondition(attribute="level", operator="gte", value=10),
    ),
    _entry(
        "XP_5000", "Coleccionista de XP", "Acumula 5000 XP",
        AchievementCategory.NIVELES, AchievementTier.GOLD, 200,
        UserAttributeCondition(attribute="xp", operator="gte", value=5000),
    ),
    # 血糖控制
    _entry(
        "IN_RANGE_10", "En la Zona", "10 glucemias seguidas en rango",
        AchievementCategory.CONTROL, AchievementTier.SILVER, 100,
        InRangeCondition(consecutive=10),
    ),
    _entry(
        "PERFECT_DAY", "Día Perfecto", "Un día con al menos 4 glucemias, todas en rango",
        AchievementCategory.CONTROL, AchievementTier.SILVER, 100,
        InRangeCondition(all_in_day=True, min_readings_per_day=4),
    ),
    _entry(
        "PERFECT_WEEK", "Semana Perfecta", "7 días perfectos",
        AchievementCategory.CONTROL, AchievementTier.GOLD, 300,
        InRangeCondition(perfect_days=7, min_readings_per_day=4),
    ),
    _entry(
        "TIR_70_MONTH", "Control Mensual", "70% del mes en rango (mínimo 60 glucemias)",
        AchievementCategory.CONTROL, AchievementTier.GOLD, 300,
        PercentageCondition(metric="time_in_range", window="month", operator="gte", value=70, min_samples=60),
    ),
    # 场景
    _entry(
        "FASTING_10", "Madrugador", "Registra 10 glucemias en ayunas",
        AchievementCategory.CONTEXTOS, AchievementTier.BRONZE, 50,
        CountCondition(entity="glucose_readings", operator="gte", value=10, context=GlucoseContext.FASTING),
    ),
    _entry(
        "ALL_CONTEXTS_DAY", "Día Completo", "Registra 4 contextos distintos en un día",
        AchievementCategory.CONTEXTOS, AchievementTier.SILVER, 75,
        TimeWindowCondition(
            entity="glucose_readings", window="day", operator="gte", value=4, unique_contexts=True
        ),
    ),
    _entry(
        "FASTING_WEEK", "Ayuno Constante", "7 días seguidos con glucemia en ayunas en rango",
        AchievementCategory.CONTEXTOS, AchievementTier.GOLD, 200,
        ConsecutiveCondition(days=7, require_context=GlucoseContext.FASTING, require_in_range=True),
    ),
    # 社交
    _entry(
        "FIRST_FRIEND", "Nuevos Amigos", "Añade tu primer amigo",
        AchievementCategory.SOCIAL, AchievementTier.BRONZE, 50,
        CountCondition(entity="friends", operator="gte", value=1),
    ),
    _entry(
        "FIRST_SHARE", "Compartir es Vivir", "Comparte tu progreso por primera vez",
        AchievementCategory.SOCIAL, AchievementTier.BRONZE, 25,
        CountCondition(entity="shares", operator="gte", value=1),
    ),
    _entry(
        "ENCOURAGER_10", "Animador", "Envía 10 mensajes de ánimo",
        AchievementCategory.SOCIAL, AchievementTier.SILVER, 75,
        CountCondition(entity="encouragements", operator="gte", value=10),
    ),
    # 特殊
    _entry(
        "PREMIUM", "Miembro Premium", "Activa tu suscripción premium",
        AchievementCategory.ESPECIALES, AchievementTier.GOLD, 100,
        UserAttributeCondition(attribute="isPremium", operator="eq", value=True),
    ),
    _entry(
        "WORLD_DIABETES_DAY", "Día Mundial de la Diabetes", "Registra una glucemia el 14 de noviembre",
        AchievementCategory.ESPECIALES, AchievementTier.GOLD, 150,
        DateCondition(check="month_day", value="11-14"),
    ),
    _entry(
        "EARLY_ADOPTER", "Pionero", "Únete antes del lanzamiento público",
        AchievementCategory.ESPECIALES, AchievementTier.PLATINUM, 200,
        DateCondition(check="before", value="2025-01-01"),
    ),
    _entry(
        "FIRST_1000", "Primeros 1000", "Sé uno de los primeros 1000 usuarios",
        AchievementCategory.ESPECIALES, AchievementTier.GOLD, 150,
        DateCondition(check="user_number", value=1000),
    ),
    _entry(
        "COMEBACK", "Regreso Triunfal", "Recupera tu racha",
        AchievementCategory.ESPECIALES, AchievementTier.SILVER, 50,
        EventCondition(event_name="streak_recovered"),
    ),
]
