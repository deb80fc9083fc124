#!/usr/bin/env python3
"""Print the current resource board. Usage: python3 check_status.py [holder_token]"""
import sys
from drugclaim.client.claim_client import ClaimClient

API = "http://localhost:8000/api/v1"
LABELS = {
    "free": "🟢 available",
    "leased_by_caller": "🔵 reserved (you)",
    "leased_by_other": "🟡 reserved",
    "assigned": "🔴 taken",
    "inactive": "⚪ inactive",
}

holder_token = sys.argv[1] if len(sys.argv) > 1 else None
board = ClaimClient(API).get_statuses(holder_token)
print(f"\n💊 DRUG BOARD (lease {board['lease_ttl_seconds']}s, heartbeat {board['heartbeat_seconds']}s)\n")
for r in board["resources"]:
    line = f"   {r['name']:<12} {LABELS.get(r['state'], r['state'])}"
    if r["assigned_by"]:
        line += f"  by Team {r['assigned_by']['team_number']} (group {r['assigned_by']['course_group']})"
    print(line)
