#!/usr/bin/env python3
"""
Create the majors pool tables (tournaments, players, scores) in PostgreSQL.
"""
import os
import sys

import psycopg2

from majorspool import datastore_pg


def main():
    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        return 1

    try:
        datastore_pg.create_tables()
    except psycopg2.Error as e:
        print(f"ERROR: schema creation failed: {e}")
        return 1
    print("Database schema created successfully")

    with datastore_pg._get_conn() as conn, conn.cursor() as cur:
        for table in ('tournaments', 'players', 'scores'):
            cur.execute(f"SELECT COUNT(*) FROM {table}")
            print(f"  {table}: {cur.fetchone()[0]} rows")
    return 0


if __name__ == "__main__":
    sys.exit(main())
