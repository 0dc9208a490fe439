#!/usr/bin/env python3
"""
Create (or reset the password of) a dashboard user.

Usage:
    python scripts/create_user.py alice --password s3cret --role admin
    python scripts/create_user.py bob --password hunter2 --email bob@example.com

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from campaign_metrics.config import USER_ROLES, ROLE_CLIENT
from campaign_metrics.database import get_session, init_db
from campaign_metrics.models.user import User


def create_or_update_user(username, password, role=ROLE_CLIENT, email='',
                          first_name='', last_name=''):
    session = get_session()
    try:
        user = session.query(User).filter_by(username=username).first()
        created = user is None
        if created:
            user = User(username=username)
            session.add(user)
        user.role = role
        user.email = email or user.email or ''
        user.first_name = first_name or user.first_name or ''
        user.last_name = last_name or user.last_name or ''
        user.status = 'active'
        user.set_password(password)
        session.commit()
        return user.id, created
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description='Create or update a dashboard user')
    parser.add_argument('username')
    parser.add_argument('--password', required=True)
    parser.add_argument('--role', choices=USER_ROLES, default=ROLE_CLIENT)
    parser.add_argument('--email', default='')
    parser.add_argument('--first-name', default='')
    parser.add_argument('--last-name', default='')
    parser.add_argument('--init-db', action='store_true',
                        help='Create tables first (local SQLite only; production uses Alembic)')
    args = parser.parse_args()

    if args.init_db:
        init_db()

    user_id, created = create_or_update_user(
        args.username, args.password, role=args.role, email=args.email,
        first_name=args.first_name, last_name=args.last_name,
    )
    print(f"{'Created' if created else 'Updated'} user {args.username} (id={user_id}, role={args.role})")


if __name__ == '__main__':
    main()
