#!/usr/bin/env python3
"""
Database Seeding Script - Contabilidad de circulante
Seed plantillas por defecto y datos de demostración (efectos y contrato de factoring).
"""

import csv
import os
from datetime import date, timedelta
from decimal import Decimal

DEMO_EFFECTS = [
    {"effect_type": "bill", "drawee_id": "CLI-001", "drawee_name": "Distribuciones Norte S.L.",
     "amount": "12500.00", "days": 60, "invoice_number": "F-2026-0101"},
    {"effect_type": "promissory_note", "drawee_id": "CLI-002", "drawee_name": "Comercial Levante S.A.",
     "amount": "8300.50", "days": 90, "invoice_number": "F-2026-0102"},
    {"effect_type": "receipt", "drawee_id": "CLI-003", "drawee_name": "Hostelería Sur S.L.",
     "amount": "2150.00", "days": 30, "invoice_number": "F-2026-0103"},
]


def read_csv(filepath: str) -> list[dict]:
    """Lee un fichero CSV."""
    if not os.path.exists(filepath):
        return []
    with open(filepath, "r", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def main():
    """Main function."""
    print("=" * 60)
    print("Database Seeding - Contabilidad de circulante")
    print("=" * 60)

    from trade_accounting.infrastructure.database import (
        SessionLocal,
        init_db,
        seed_default_templates,
    )

    init_db()

    from trade_accounting.domain.entities import DiscountEffect, FactoringContract
    from trade_accounting.domain.value_objects import EffectType, FactoringContractType
    from trade_accounting.infrastructure.database.models import DiscountEffectRow
    from trade_accounting.infrastructure.repositories import (
        SqlFactoringRepository,
        SqlRemittanceRepository,
    )

    entity_id = os.getenv("SEED_ENTITY_ID", "BANCO-DEMO")
    db = SessionLocal()

    try:
        created = seed_default_templates(db)
        print(f"✓ Seeded {created} accounting templates")

        # Efectos en cartera
        effects_data = read_csv(os.getenv("SEED_EFFECTS_CSV", "data/seed/effects.csv")) or DEMO_EFFECTS
        print(f"\n📦 Seeding {len(effects_data)} effects...")
        remittances = SqlRemittanceRepository(db)
        today = date.today()
        seeded = 0
        for row in effects_data:
            exists = db.query(DiscountEffectRow).filter(
                DiscountEffectRow.invoice_number == row["invoice_number"]
            ).first()
            if exists:
                continue
            remittances.save_effect(
                DiscountEffect(
                    effect_type=EffectType(row["effect_type"]),
                    drawee_id=row["drawee_id"],
                    drawee_name=row.get("drawee_name"),
                    amount=Decimal(str(row["amount"])),
                    issue_date=today,
                    maturity_date=today + timedelta(days=int(row.get("days", 60))),
                    invoice_number=row["invoice_number"],
                ),
                entity_id=entity_id,
            )
            seeded += 1
        print(f"✓ Seeded {seeded} effects")

        # Contrato de factoring
        factoring = SqlFactoringRepository(db)
        if not factoring.get_contract_by_number("FACT-DEMO-001"):
            factoring.save(contract=FactoringContract(
                contract_number="FACT-DEMO-001",
                financial_entity_id=entity_id,
                customer_id="EMPRESA-DEMO",
                contract_type=FactoringContractType.WITH_RECOURSE,
                global_limit=Decimal("250000.00"),
                advance_percentage=Decimal("80"),
                interest_rate=Decimal("4.5"),
                commission_rate=Decimal("0.6"),
            ))
            print("✓ Created factoring contract FACT-DEMO-001")
        else:
            print("✓ Factoring contract FACT-DEMO-001 already exists")

        pending = remittances.list_pending_effects(entity_id)
        total = sum((effect.amount for effect in pending), Decimal("0"))

        print("\n" + "=" * 60)
        print("Seeding completed successfully!")
        print(f"Pending effects for {entity_id}: {len(pending)} ({total} EUR)")
        print("=" * 60)

    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
