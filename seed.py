import argparse

from cashbook.core.database import SessionLocal, init_db
from cashbook.services.integration import build_integration_service
from cashbook.services.storage_service import StorageService
from cashbook.utils.sample_data import seed_tenant

parser = argparse.ArgumentParser(description="Fill a tenant with sample data and run one integration pass.")
parser.add_argument("tenant_id")
parser.add_argument("--seed", type=int, default=None)
parser.add_argument("--no-integrate", action="store_true")
args = parser.parse_args()

init_db()
db = SessionLocal()

try:
    print(f"🔄 Seeding tenant {args.tenant_id}...")
    counts = seed_tenant(StorageService(db, args.tenant_id), seed=args.seed)
    for name, count in counts.items():
        print(f"✅ Seeded {count} {name}")

    if not args.no_integrate:
        print("🔄 Running integration pass...")
        result = build_integration_service(db, args.tenant_id).run_integration_pass()
        appended = sum(s.appended for s in result.sync)
        print(f"✅ {appended} ledger entries, {result.conflicts_found} conflicts, {result.alerts_raised} alerts")
        for error in result.errors:
            print(f"⚠️ {error}")
finally:
    db.close()
