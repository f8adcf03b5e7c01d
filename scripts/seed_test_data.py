#!/usr/bin/env python3
"""
Seed cascade data for checking the SLA dashboard locally.

Creates an active config (queue 101 → 102 → 103) and clients covering the
main scenarios:
  1. Converted by the first consultant
  2. Escalated once, converted by the second consultant
  3. Queue exhausted (stuck lead)
  4. Fresh assignment (Ok)
  5. Assignment close to its deadline (Critico)

Usage:
    python scripts/seed_test_data.py                  # seed all scenarios
    python scripts/seed_test_data.py --client-base 5000

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
Entries are never deleted, so re-running needs a new --client-base.
"""
import sys
import os
import argparse
from datetime import datetime, timezone, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from leadcascade.database import init_db
from leadcascade.logging_config import configure_logging
from leadcascade.services import config_store, escalation, metrics, orchestrator

QUEUE = [101, 102, 103]
SLA_HOURS = 4


def seed(client_base):
    now = datetime.now(timezone.utc)
    base = now - timedelta(days=2)

    config = config_store.create_config({
        'name': f'seed-{client_base}',
        'queue': QUEUE,
        'sla_hours_per_step': SLA_HOURS,
    })
    print(f'  Config {config["id"]}: queue={QUEUE}, sla={SLA_HOURS}h (now active)')

    converted, escalated, stuck, fresh, critical = (client_base + i for i in range(1, 6))

    for lead_offset, cliente_id in enumerate((converted, escalated, stuck)):
        orchestrator.start_cascade(client_base + 100 + lead_offset, cliente_id, now=base)

    # [1] first consultant books within the SLA
    orchestrator.finalize_all(converted, QUEUE[0], now=base + timedelta(hours=1))
    print(f'  [1] Converted at sequence 1:   client {converted}')

    # [2] + [3] first deadline passes for both remaining clients
    escalation.sweep(base + timedelta(hours=SLA_HOURS))
    orchestrator.finalize_all(escalated, QUEUE[1], now=base + timedelta(hours=SLA_HOURS + 1))
    print(f'  [2] Converted at sequence 2:   client {escalated}')

    escalation.sweep(base + timedelta(hours=SLA_HOURS * 2))
    escalation.sweep(base + timedelta(hours=SLA_HOURS * 3))
    print(f'  [3] Stuck (queue exhausted):   client {stuck}')

    orchestrator.start_cascade(client_base + 103, fresh, now=now - timedelta(minutes=30))
    print(f'  [4] Fresh assignment:          client {fresh}')

    orchestrator.start_cascade(client_base + 104, critical, now=now - timedelta(hours=SLA_HOURS * 0.95))
    print(f'  [5] Near deadline:             client {critical}')


def main():
    parser = argparse.ArgumentParser(description='Seed cascade data for dashboard verification')
    parser.add_argument('--client-base', type=int, default=900000,
                        help='First seeded cliente_id is client-base + 1')
    args = parser.parse_args()

    configure_logging()
    init_db()

    print('Seeding cascade scenarios...')
    seed(args.client_base)

    summary = metrics.active_assignments()['summary']
    print(f'Done. Active assignments by urgency: {summary}')


if __name__ == '__main__':
    main()
