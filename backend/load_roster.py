"""
Roster Loader Script - loads a roster JSON file into the service via API.

The file holds a list of students:
    [{"name": "Alice", "student_no": "S001"}, {"name": "Bob"}, ...]

Each entry is posted to /api/students for the given owner.

Usage:
    python load_roster.py roster.json teacher-1
    python load_roster.py roster.json teacher-1 http://localhost:8000
    API_URL=http://backend:8000 python load_roster.py roster.json teacher-1
"""

import json
import os
import sys

import httpx


def load_students(path):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("students", [])
    return [s for s in data if isinstance(s, dict) and s.get("name")]


def post_students(client, api_url, owner_id, students):
    """Post each student; returns (created, failed) lists."""
    created, failed = [], []
    for student in students:
        payload = {
            "name": student["name"],
            "student_no": student.get("student_no"),
            "avatar": student.get("avatar"),
            "points": int(student.get("points", 0)),
        }
        try:
            resp = client.post(f"{api_url}/api/students", json=payload,
                               headers={"X-User-ID": owner_id})
            resp.raise_for_status()
            created.append(resp.json())
        except httpx.HTTPError as e:
            failed.append((student["name"], str(e)))
    return created, failed


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    roster_file, owner_id = sys.argv[1], sys.argv[2]
    api_url = sys.argv[3] if len(sys.argv) > 3 else os.getenv("API_URL", "http://localhost:8000")

    if not os.path.exists(roster_file):
        print(f"Error: Could not find {roster_file}")
        sys.exit(1)

    students = load_students(roster_file)
    print(f"Found {len(students)} students in {roster_file}")
    print(f"Sending to: {api_url}/api/students (owner {owner_id})")
    print()

    with httpx.Client(timeout=30.0) as client:
        created, failed = post_students(client, api_url, owner_id, students)

    print("=" * 60)
    print("ROSTER SUMMARY")
    print("=" * 60)
    print(f"  Created: {len(created)}")
    print(f"  Failed:  {len(failed)}")
    print("=" * 60)
    for name, reason in failed:
        print(f"  ❌ {name}: {reason}")

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
