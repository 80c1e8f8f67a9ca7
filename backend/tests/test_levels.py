from dailybag.core.levels import LEVELS, MAX_LEVEL, CalculateLevel, ComputeProgress, EfficiencyBadge


def test_level_table_boundaries():
    assert CalculateLevel(0) == 1
    assert CalculateLevel(24) == 1
    assert CalculateLevel(25) == 2
    assert CalculateLevel(149) == 3
    assert CalculateLevel(150) == 4
    assert CalculateLevel(4999) == 9
    assert CalculateLevel(5000) == MAX_LEVEL
    assert CalculateLevel(10**6) == MAX_LEVEL


def test_level_names():
    assert [level.Name for level in LEVELS[:3]] == ["Down Bad", "Mid", "Valid'"]
    assert LEVELS[-1].Name == "Literally Everything"


def test_progress_midway():
    progress = ComputeProgress(2, 50)
    assert progress.CurrentLevel.Level == 2
    assert progress.NextLevel.Level == 3
    assert progress.ProgressToNextLevel == 50.0
    assert progress.PointsToNextLevel == 25
    assert progress.IsMaxLevel is False


def test_progress_is_clamped_for_persisted_level():
    progress = ComputeProgress(4, 100)
    assert progress.ProgressToNextLevel == 0.0
    assert progress.PointsToNextLevel == 200


def test_progress_clamped_above_hundred():
    progress = ComputeProgress(1, 80)
    assert progress.ProgressToNextLevel == 100.0
    assert progress.PointsToNextLevel == 0


def test_progress_at_max_level():
    progress = ComputeProgress(MAX_LEVEL, 9000)
    assert progress.IsMaxLevel is True
    assert progress.NextLevel is None
    assert progress.ProgressToNextLevel == 100.0
    assert progress.PointsToNextLevel == 0


def test_progress_without_stats():
    progress = ComputeProgress(None, None)
    assert progress.CurrentLevel.Level == 1
    assert progress.IsMaxLevel is True
    assert progress.ProgressToNextLevel == 100.0


def test_efficiency_badges():
    assert EfficiencyBadge(90) == "Efficiency Master"
    assert EfficiencyBadge(85) == "Efficiency Master"
    assert EfficiencyBadge(70) == "Highly Efficient"
    assert EfficiencyBadge(55.5) == "Efficient"
    assert EfficiencyBadge(40) == "Getting There"
    assert EfficiencyBadge(39.99) == "Room to Improve"
