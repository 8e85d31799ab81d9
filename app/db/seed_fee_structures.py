"""
Seed script to populate fee structures for one academic year.

This script:
1. Creates a class fee structure for every class level (Pre Nursery .. Class 12)
2. Creates hostel fee structures for Class 5 and above
3. Creates bus fee structures for a starter list of villages

Existing structures for the same key are left untouched, so the script can be re-run.

    python -m app.db.seed_fee_structures --academic-year 2024-2025
"""
import argparse
import asyncio
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import BusFeeStructure, ClassFeeStructure, HostelFeeStructure
from app.db.session import AsyncSessionLocal, init_models
from app.fees.class_levels import ClassLevel

# Annual school fee per class band: (first level, last level, annual fee)
CLASS_FEE_BANDS: List[Tuple[ClassLevel, ClassLevel, int]] = [
    (ClassLevel.PRE_NURSERY, ClassLevel.UKG, 30000),
    (ClassLevel.CLASS_1, ClassLevel.CLASS_5, 40000),
    (ClassLevel.CLASS_6, ClassLevel.CLASS_8, 50000),
    (ClassLevel.CLASS_9, ClassLevel.CLASS_10, 60000),
    (ClassLevel.CLASS_11, ClassLevel.CLASS_12, 75000),
]

HOSTEL_FROM = ClassLevel.CLASS_5
HOSTEL_ANNUAL_FEE = 80000

# (village, distance km, annual fee, vehicle type)
BUS_ROUTES: List[Tuple[str, str, int, str]] = [
    ("Rampur", "5", 8000, "bus"),
    ("Shivpur", "8", 10000, "bus"),
    ("Krishnanagar", "12", 12000, "bus"),
    ("Lakshmipuram", "3", 6000, "van"),
]


def _annual_fee(level: ClassLevel) -> int:
    for first, last, fee in CLASS_FEE_BANDS:
        if first <= level <= last:
            return fee
    raise ValueError(f"No fee band for {level.display_name}")


def _class_components(annual_fee: int) -> dict:
    """Split the annual fee into its named components; tuition takes the remainder."""
    exam = annual_fee // 10
    activity = annual_fee // 20
    library = annual_fee // 50
    sports = annual_fee // 50
    return {
        "tuition_fee": Decimal(annual_fee - exam - activity - library - sports),
        "exam_fee": Decimal(exam),
        "activity_fee": Decimal(activity),
        "library_fee": Decimal(library),
        "sports_fee": Decimal(sports),
    }


async def seed_fee_structures(db: AsyncSession, academic_year: str) -> None:
    """Seed class, hostel and bus fee structures for academic_year."""
    class_created = 0
    class_skipped = 0
    for level in ClassLevel:
        stmt = select(ClassFeeStructure).where(
            ClassFeeStructure.class_level == level.value,
            ClassFeeStructure.academic_year == academic_year,
        )
        if (await db.execute(stmt)).scalar_one_or_none():
            class_skipped += 1
            continue
        annual_fee = _annual_fee(level)
        db.add(
            ClassFeeStructure(
                class_level=level.value,
                academic_year=academic_year,
                total_annual_fee=Decimal(annual_fee),
                total_terms=3,
                description=f"{level.display_name} fees {academic_year}",
                **_class_components(annual_fee),
            )
        )
        class_created += 1
    await db.commit()

    hostel_created = 0
    hostel_skipped = 0
    for level in ClassLevel:
        if level < HOSTEL_FROM:
            continue
        stmt = select(HostelFeeStructure).where(
            HostelFeeStructure.class_level == level.value,
            HostelFeeStructure.academic_year == academic_year,
        )
        if (await db.execute(stmt)).scalar_one_or_none():
            hostel_skipped += 1
            continue
        db.add(
            HostelFeeStructure(
                class_level=level.value,
                academic_year=academic_year,
                total_annual_fee=Decimal(HOSTEL_ANNUAL_FEE),
                total_terms=3,
            )
        )
        hostel_created += 1
    await db.commit()

    bus_created = 0
    bus_skipped = 0
    for village, distance, fee, vehicle in BUS_ROUTES:
        stmt = select(BusFeeStructure).where(
            BusFeeStructure.village_name == village,
            BusFeeStructure.academic_year == academic_year,
        )
        if (await db.execute(stmt)).scalar_one_or_none():
            bus_skipped += 1
            continue
        db.add(
            BusFeeStructure(
                village_name=village,
                academic_year=academic_year,
                distance=Decimal(distance),
                fee_amount=Decimal(fee),
                vehicle_type=vehicle,
            )
        )
        bus_created += 1
    await db.commit()

    # Print summary
    print("=" * 60)
    print(f"Fee Structure Seeding Summary ({academic_year})")
    print("=" * 60)
    print(f"Class structures created: {class_created}, already present: {class_skipped}")
    print(f"Hostel structures created: {hostel_created}, already present: {hostel_skipped}")
    print(f"Bus structures created: {bus_created}, already present: {bus_skipped}")
    print("=" * 60)
    print("✅ Seeding completed successfully!")


async def run(academic_year: str) -> None:
    await init_models()
    async with AsyncSessionLocal() as db:
        try:
            await seed_fee_structures(db, academic_year)
        except Exception as e:
            print(f"❌ Error seeding fee structures: {e}")
            await db.rollback()
            raise


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed default fee structures for an academic year")
    parser.add_argument("--academic-year", type=str, required=True, help="Academic year, e.g. 2024-2025")
    args = parser.parse_args()
    asyncio.run(run(args.academic_year))


if __name__ == "__main__":
    main()
