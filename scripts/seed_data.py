#!/usr/bin/env python3
"""
Seed script — creates a demo dataset for the Pet Places API.

Creates:
  • the demo user (id 1 on a fresh database) plus a few neighbours
  • 8 pet-friendly places around San Francisco
  • a handful of community threads with comments and likes
  • a couple of favorites for the demo user

Run against a running API:
  python scripts/seed_data.py --api-url http://localhost:8000

All IDs are printed so you can use them in curl commands.
"""
import argparse
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass


BASE_USERS = [
    ("emily", "Emily", ["Peanuts", "Dairy", "Pet Dander"]),
    ("marcus_and_max", "Marcus", ["Gluten"]),
    ("priya_paws", "Priya", []),
    ("tom_the_cat_guy", "Tom", ["Pet Dander"]),
]

# name, description, lat, lng, address, allergy features, allergy_safe
SAMPLE_PLACES = [
    ("Bark & Brew", "Coffee shop with a shaded dog patio and water bowls.",
     37.7764, -122.4241, "432 Hayes St", ["Peanut-Free", "Dairy-Free Options"], True),
    ("Whisker Lounge", "Cat café with adoptable residents and oat-milk drinks.",
     37.7599, -122.4148, "2120 Mission St", ["Dairy-Free"], False),
    ("Dolores Dog Run", "Off-leash area on the upper slope of the park.",
     37.7596, -122.4269, "Dolores Park", ["Pet Dander Warning"], False),
    ("The Gluten-Free Hound", "Bakery with gluten-free treats for people and dogs.",
     37.7849, -122.4074, "88 Kearny St", ["Gluten-Free", "Peanut-Free"], True),
    ("Paws on the Pier", "Waterfront bistro, dogs welcome at outdoor tables.",
     37.8087, -122.4098, "Pier 39", ["Shellfish Warning"], False),
    ("Sunset Sniffery", "Neighbourhood deli with allergen-labelled menu.",
     37.7530, -122.4946, "1800 Irving St", ["Peanut-Free", "Gluten-Free Options"], True),
    ("Presidio Picnic Lawn", "Open lawn with food trucks on weekends.",
     37.8024, -122.4565, "Presidio Main Post", [], False),
    ("Nut-Free Noodle Bar", "Ramen spot with a strict nut-free kitchen; patio seating for pets.",
     37.7886, -122.4324, "1581 Webster St", ["Peanut-Free", "Tree Nut-Free"], True),
]

SAMPLE_THREADS = [
    ("Best peanut-free brunch with a dog?", "Looking for somewhere my pup and I can both eat safely."),
    ("Cat cafés and allergies", "Has anyone with a dander allergy managed a visit? Tips?"),
    ("Dog-friendly patios in the Mission", "Share your favourites, bonus points for shade."),
]

SAMPLE_COMMENTS = [
    "Bark & Brew is great, they label everything.",
    "Take an antihistamine an hour before — worked for me.",
    "The Gluten-Free Hound has dog biscuits too!",
    "Sunset Sniffery staff were really careful about cross-contamination.",
    "Dolores gets busy after 4pm, go early.",
]


@dataclass
class ApiClient:
    base_url: str

    def request(self, method: str, path: str, data: dict | None = None) -> dict | list:
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode() if data is not None else None
        req = urllib.request.Request(
            url, data=body, headers={"Content-Type": "application/json"}, method=method
        )
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                raw = resp.read()
                return json.loads(raw) if raw else {}
        except urllib.error.HTTPError as e:
            print(f"  HTTP {e.code} on {method} {path}: {e.read().decode()}")
            return {}

    def post(self, path: str, data: dict) -> dict:
        return self.request("POST", path, data)

    def get(self, path: str) -> dict | list:
        return self.request("GET", path)


def wait_for_api(client: ApiClient, retries: int = 15) -> None:
    print(f"Waiting for API at {client.base_url} ...")
    for i in range(retries):
        try:
            result = client.get("/health")
            if isinstance(result, dict) and result.get("status") == "ok":
                print("  API is ready!\n")
                return
        except OSError:
            pass
        time.sleep(3)
    raise RuntimeError(f"API not reachable at {client.base_url} after {retries} retries")


def main(api_url: str) -> None:
    client = ApiClient(api_url)
    wait_for_api(client)

    # ── Create users ─────────────────────────────────────────────────────
    print("Creating users...")
    user_ids: list[int] = []
    for username, display_name, allergies in BASE_USERS:
        result = client.post(
            "/api/users",
            {"username": username, "password": "demo", "displayName": display_name, "allergies": allergies},
        )
        uid = result.get("id")
        if uid:
            user_ids.append(uid)
            print(f"  ✓ {username} ({uid})")
        else:
            print(f"  ✗ Failed to create {username}")

    if not user_ids:
        print("No users created — aborting")
        return

    # ── Create places ─────────────────────────────────────────────────────
    print("\nCreating places...")
    place_ids: list[int] = []
    for name, description, lat, lng, address, features, safe in SAMPLE_PLACES:
        result = client.post(
            "/api/places",
            {
                "name": name,
                "description": description,
                "latitude": lat,
                "longitude": lng,
                "address": address,
                "allergyFeatures": features,
                "allergySafe": safe,
            },
        )
        if result.get("id"):
            place_ids.append(result["id"])
    print(f"  ✓ {len(place_ids)} places created")

    # ── Threads, comments and likes ──────────────────────────────────────
    print("\nCreating threads...")
    thread_ids: list[int] = []
    for title, content in SAMPLE_THREADS:
        result = client.post("/api/threads", {"title": title, "content": content, "userId": random.choice(user_ids)})
        if result.get("id"):
            thread_ids.append(result["id"])

    comments = likes = 0
    for thread_id in thread_ids:
        for text in random.sample(SAMPLE_COMMENTS, k=random.randint(1, 3)):
            client.post(f"/api/threads/{thread_id}/comments", {"content": text, "userId": random.choice(user_ids)})
            comments += 1
        for _ in range(random.randint(0, 4)):
            client.post(f"/api/threads/{thread_id}/like", {"increment": True})
            likes += 1
    print(f"  ✓ {len(thread_ids)} threads, {comments} comments, {likes} likes")

    # ── Favorites for the demo user ──────────────────────────────────────
    print("\nAdding favorites...")
    demo_id = user_ids[0]
    for place_id in place_ids[:2]:
        client.post("/api/favorites", {"userId": demo_id, "placeId": place_id})
    print(f"  ✓ user {demo_id} has {len(place_ids[:2])} favorites")

    # ── Print summary ─────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("Seed complete! Here are some commands to try:\n")
    print("# Places within 2 km of Hayes Valley:")
    print(f"  curl -s '{api_url}/api/places/nearby?lat=37.7764&lng=-122.4241&radius=2' | python3 -m json.tool\n")
    print(f"# Favorites of user {demo_id}:")
    print(f"  curl -s '{api_url}/api/users/{demo_id}/favorites' | python3 -m json.tool\n")
    print("# Check Jaeger traces: http://localhost:16686")
    print(f"# Check Prometheus metrics: {api_url}/metrics")
    print("=" * 60)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Pet Places API")
    parser.add_argument("--api-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    main(args.api_url)
