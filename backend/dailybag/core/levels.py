from dataclasses import dataclass


@dataclass(frozen=True)
class LevelDefinition:
    Level: int
    Name: str
    PointsRequired: int
    Icon: str


LEVELS = [
    LevelDefinition(1, "Down Bad", 0, "🌱"),
    LevelDefinition(2, "Mid", 25, "📚"),
    LevelDefinition(3, "Valid'", 75, "🛠️"),
    LevelDefinition(4, "Locked In", 150, "⭐"),
    LevelDefinition(5, "Main Character", 300, "🏆"),
    LevelDefinition(6, "Living My Best Life", 500, "👑"),
    LevelDefinition(7, "Iconic", 1000, "🌟"),
    LevelDefinition(8, "That Person", 2000, "💎"),
    LevelDefinition(9, "Goated", 3500, "✨"),
    LevelDefinition(10, "Literally Everything", 5000, "👑"),
]
MAX_LEVEL = len(LEVELS)

EFFICIENCY_BADGES = [
    (85, "Efficiency Master"),
    (70, "Highly Efficient"),
    (55, "Efficient"),
    (40, "Getting There"),
]
DEFAULT_EFFICIENCY_BADGE = "Room to Improve"


@dataclass
class LevelProgress:
    CurrentLevel: LevelDefinition
    NextLevel: LevelDefinition | None
    ProgressToNextLevel: float
    PointsToNextLevel: int
    IsMaxLevel: bool


def GetLevel(level: int) -> LevelDefinition | None:
    for definition in LEVELS:
        if definition.Level == level:
            return definition
    return None


def CalculateLevel(points: int) -> int:
    current = LEVELS[0].Level
    for definition in LEVELS:
        if points >= definition.PointsRequired:
            current = definition.Level
        else:
            break
    return current


def ComputeProgress(current_level: int | None, earned_points: int | None) -> LevelProgress:
    """Progress towards the level after ``current_level``.

    ``current_level`` is the displayed level, which may be a persisted level
    above what ``earned_points`` alone would give. With no stats at all the
    user is shown as complete on the first level.
    """
    if current_level is None or earned_points is None:
        return LevelProgress(LEVELS[0], None, 100.0, 0, True)

    current = GetLevel(current_level) or LEVELS[0]
    next_level = GetLevel(current.Level + 1)
    if next_level is None:
        return LevelProgress(current, None, 100.0, 0, True)

    span = next_level.PointsRequired - current.PointsRequired
    progress = (earned_points - current.PointsRequired) / span * 100
    return LevelProgress(
        CurrentLevel=current,
        NextLevel=next_level,
        ProgressToNextLevel=min(max(progress, 0.0), 100.0),
        PointsToNextLevel=max(next_level.PointsRequired - earned_points, 0),
        IsMaxLevel=False,
    )


def EfficiencyBadge(score: float) -> str:
    for threshold, label in EFFICIENCY_BADGES:
        if score >= threshold:
            return label
    return DEFAULT_EFFICIENCY_BADGE
