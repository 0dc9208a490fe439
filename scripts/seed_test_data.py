#!/usr/bin/env python3
"""
Seed demo data for verifying the dashboard locally.

Creates an admin and a client user, then uploads sample campaign CSVs for the
client covering the key scenarios:
  1. Healthy file — processed, positive ROI
  2. Zero-click file — processed, all click ratios 0
  3. File missing the Cost column — left in failed state

Usage:
    python scripts/seed_test_data.py          # seed all scenarios
    python scripts/seed_test_data.py --clear  # wipe seeded uploads first

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from campaign_metrics.config import ROLE_ADMIN, ROLE_CLIENT
from campaign_metrics.database import init_db
from campaign_metrics.errors import PipelineError
from campaign_metrics.pipeline.base import Caller
from campaign_metrics.pipeline.manager import process_upload
from campaign_metrics.pipeline.receiver import receive_upload
from campaign_metrics.services.db import list_uploads, delete_upload

from create_user import create_or_update_user


SAMPLES = {
    'spring_campaigns.csv': (
        "Campaign,Impressions,Clicks,Conversions,Cost,Revenue\n"
        "Search - Brand,10000,500,25,1200,3000\n"
        "Social - Retargeting,15000,700,35,1500,4200\n"
    ),
    'paused_display.csv': (
        "Campaign,Impressions,Clicks,Conversions,Cost,Revenue\n"
        "Display - Paused,8000,0,0,300,0\n"
    ),
    'broken_export.csv': (
        "Campaign,Impressions,Clicks,Conversions,Revenue\n"
        "Email - Newsletter,5000,250,12,900\n"
    ),
}


def clear(caller):
    removed = 0
    for upload in list_uploads(caller):
        if upload.filename in SAMPLES:
            delete_upload(caller, upload.id)
            removed += 1
    print(f"Removed {removed} seeded upload(s)")


def seed(caller):
    for filename, text in SAMPLES.items():
        upload = receive_upload(caller, filename, text.encode('utf-8'), 'text/csv')
        try:
            record = process_upload(caller, upload.id)
            print(f"  {filename}: processed — CTR {record.click_through_rate}%, ROI {record.roi}%")
        except PipelineError as e:
            print(f"  {filename}: failed — {e.code}: {e}")


def main():
    parser = argparse.ArgumentParser(description='Seed demo data for UI verification')
    parser.add_argument('--clear', action='store_true', help='Remove seeded uploads before seeding')
    parser.add_argument('--clear-only', action='store_true', help='Only clear, do not re-seed')
    args = parser.parse_args()

    init_db()
    create_or_update_user('admin', 'admin-password', role=ROLE_ADMIN, first_name='Demo', last_name='Admin')
    client_id, _ = create_or_update_user('client', 'client-password', role=ROLE_CLIENT,
                                         first_name='Demo', last_name='Client')
    caller = Caller(user_id=client_id, role=ROLE_CLIENT)

    if args.clear or args.clear_only:
        clear(caller)
    if not args.clear_only:
        print("Seeding sample uploads:")
        seed(caller)


if __name__ == '__main__':
    main()
