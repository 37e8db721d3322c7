from pydantic import BaseModel, Field

# Valores por defecto si system_settings no tiene la clave
DEFAULT_XP_RULES = {
    "lesson_completed": 10,
    "quiz_passed": 20,
    "perfect_score": 15,
    "course_completed": 100,
    "daily_login": 5,
    "streak_bonus": 25,
}

DEFAULT_LEVEL_RULES = {
    "xp_base": 100,
    "xp_multiplier": 1.2,
    "max_level": 50,
}


class XpRulesSchema(BaseModel):
    lesson_completed: int = Field(DEFAULT_XP_RULES["lesson_completed"], ge=0, le=10_000)
    quiz_passed: int = Field(DEFAULT_XP_RULES["quiz_passed"], ge=0, le=10_000)
    perfect_score: int = Field(DEFAULT_XP_RULES["perfect_score"], ge=0, le=10_000)
    course_completed: int = Field(DEFAULT_XP_RULES["course_completed"], ge=0, le=10_000)
    daily_login: int = Field(DEFAULT_XP_RULES["daily_login"], ge=0, le=10_000)
    streak_bonus: int = Field(DEFAULT_XP_RULES["streak_bonus"], ge=0, le=10_000)


class LevelRulesSchema(BaseModel):
    xp_base: int = Field(DEFAULT_LEVEL_RULES["xp_base"], ge=1, le=100_000)
    xp_multiplier: float = Field(DEFAULT_LEVEL_RULES["xp_multiplier"], ge=1.0, le=5.0)
    max_level: int = Field(DEFAULT_LEVEL_RULES["max_level"], ge=1, le=1000)


SETTINGS_SCHEMAS = {
    "xp_rules": XpRulesSchema,
    "level_rules": LevelRulesSchema,
}
