#!/usr/bin/env python3
"""
Smoke check against a running Survey Outreach Contact Finder instance.

Usage: python smoke_check.py [base_url]
"""

import requests
import sys


def check_health(base_url):
    """Check the health endpoint."""
    try:
        response = requests.get(f"{base_url}/health", timeout=10)
        if response.status_code == 200:
            print(f"✅ Health check passed: {response.json()}")
            return True
        print(f"❌ Health check failed: {response.status_code}")
        return False
    except requests.exceptions.RequestException as e:
        print(f"❌ Health check error: {e}")
        return False


def check_validation(base_url):
    """A request without a title must be rejected before reaching Apollo."""
    try:
        response = requests.post(f"{base_url}/api/people", json={"title": "", "location": "CA"}, timeout=10)
        data = response.json()
        if response.status_code == 400 and data.get("step") == "validate":
            print(f"✅ Validation check passed: {data}")
            return True
        print(f"❌ Unexpected validation response: {response.status_code} {data}")
        return False
    except (requests.exceptions.RequestException, ValueError) as e:
        print(f"❌ Validation check error: {e}")
        return False


def check_people_search(base_url):
    """Run a real people search (uses Apollo credits)."""
    search = {"title": "Head of Product", "location": "California, US", "limit": 3}

    try:
        response = requests.post(f"{base_url}/api/people", json=search, timeout=60)
        data = response.json()
        if response.status_code == 200:
            print(f"✅ People search returned {len(data['contacts'])} contacts")
            for contact in data["contacts"]:
                print(f"   {contact['name']} <{contact['email']}> {contact['company']}")
            return True
        print(f"❌ People search failed at {data.get('step')}: {data.get('error')}")
        return False
    except (requests.exceptions.RequestException, ValueError) as e:
        print(f"❌ People search error: {e}")
        return False


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    checks = [
        ("Health Check", check_health),
        ("Request Validation", check_validation),
        ("People Search", check_people_search),
    ]

    passed = 0
    for name, check in checks:
        print(f"\n🧪 Running {name}...")
        if check(base_url):
            passed += 1

    print("\n" + "=" * 50)
    print(f"📊 Results: {passed}/{len(checks)} checks passed")
    return 0 if passed == len(checks) else 1


if __name__ == "__main__":
    sys.exit(main())
