import json

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from inspection.models import Assessment, Comparison, Damage, Photo


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


async def _assessment(db_session):
    assessment = Assessment(
        id="a-001", vehicle_id="VH-001", vehicle_name="Toyota Corolla",
        status="pickup_in_progress", created_at="2026-02-21T10:00:00Z",
    )
    db_session.add(assessment)
    await db_session.commit()
    return assessment


def _photo(photo_id, angle="front", phase="pickup"):
    return Photo(
        id=photo_id, assessment_id="a-001", angle=angle, phase=phase,
        filename=f"{angle}.jpg", storage_path=f"/data/{photo_id}.jpg",
        uploaded_at="2026-02-21T10:05:00Z",
    )


@pytest.mark.asyncio
async def test_create_assessment(db_session):
    await _assessment(db_session)

    result = await db_session.get(Assessment, "a-001")
    assert result is not None
    assert result.vehicle_name == "Toyota Corolla"
    assert result.total_damage_cost == 0
    assert result.completed_at is None


@pytest.mark.asyncio
async def test_create_photo(db_session):
    await _assessment(db_session)
    db_session.add(_photo("p-001"))
    await db_session.commit()

    result = await db_session.get(Photo, "p-001")
    assert result is not None
    assert result.angle == "front"
    assert result.file_size == 0


@pytest.mark.asyncio
async def test_one_photo_per_angle_and_phase(db_session):
    await _assessment(db_session)
    db_session.add(_photo("p-001"))
    await db_session.commit()

    db_session.add(_photo("p-002"))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()

    db_session.add(_photo("p-003", phase="return"))
    await db_session.commit()


@pytest.mark.asyncio
async def test_create_damage_and_comparison(db_session):
    await _assessment(db_session)
    db_session.add(_photo("p-001"))
    await db_session.commit()

    db_session.add(Damage(
        id="d-001", assessment_id="a-001", photo_id="p-001", angle="front", phase="pickup",
        description="Minor scratch on bumper", severity="minor", location="x:150,y:100",
        bounding_box=json.dumps({"x": 100, "y": 50, "width": 200, "height": 100}),
        estimated_cost=150, confidence=0.92, created_at="2026-02-21T11:00:00Z",
    ))
    db_session.add(Comparison(
        id="c-001", assessment_id="a-001", angle="front", pickup_photo_id="p-001",
        matched_count=1, new_damages_count=0, new_damages_cost=0,
        compared_at="2026-02-21T12:00:00Z",
    ))
    await db_session.commit()

    damage = await db_session.get(Damage, "d-001")
    assert damage.is_new is False
    assert json.loads(damage.bounding_box)["width"] == 200

    comparison = await db_session.get(Comparison, "c-001")
    assert comparison.matched_count == 1
