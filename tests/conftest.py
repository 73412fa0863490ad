"""Global test fixtures."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from claimrisk.services.business_days import BusinessDayCalculator  # noqa: E402
from claimrisk.services.denial_model import BoostingParams  # noqa: E402
from claimrisk.services.feature_encoder import FeatureEncoder  # noqa: E402
from claimrisk.services.holiday_calendar import HolidayCalendar  # noqa: E402
from claimrisk.services.model_training import TrainingPipeline  # noqa: E402
from claimrisk.services.synthetic import generate_claims  # noqa: E402

FAST_PARAMS = BoostingParams(
    n_estimators=40,
    learning_rate=0.2,
    max_depth=2,
    min_samples_leaf=5,
    subsample=0.8,
    seed=42,
)


@pytest.fixture
def calendar() -> HolidayCalendar:
    return HolidayCalendar()


@pytest.fixture
def calculator(calendar) -> BusinessDayCalculator:
    return BusinessDayCalculator(calendar)


@pytest.fixture(scope="session")
def synthetic_rows():
    return generate_claims(600, seed=3, denial_rate=0.1)


@pytest.fixture(scope="session")
def trained_pair(synthetic_rows):
    pipeline = TrainingPipeline(encoder=FeatureEncoder(), params=FAST_PARAMS)
    return pipeline.fit_and_train(synthetic_rows, model_id="gbt_test", split_ratio=0.8)


@pytest.fixture
def fast_params() -> BoostingParams:
    return FAST_PARAMS
