import urllib.request
import urllib.error
import json

ROOT = "http://localhost:8000"
BASE = f"{ROOT}/api/v1"

def post(path, body=None, base=BASE):
    data = json.dumps(body or {}).encode()
    req = urllib.request.Request(
        f"{base}{path}",
        data=data,
        headers={"Content-Type": "application/json"}
    )
    try:
        with urllib.request.urlopen(req) as r:
            raw = r.read()
            return json.loads(raw) if raw else {"status": r.status}
    except urllib.error.HTTPError as e:
        return json.loads(e.read())

def patch(path, body=None, base=BASE):
    data = json.dumps(body or {}).encode()
    req = urllib.request.Request(
        f"{base}{path}",
        data=data,
        headers={"Content-Type": "application/json"},
        method="PATCH"
    )
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())

def get(path, params=None, base=BASE):
    url = f"{base}{path}"
    if params:
        url += "?" + "&".join(f"{k}={v}" for k, v in params.items())
    req = urllib.request.Request(url)
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())

def section(title):
    print(f"\n{'='*60}")
    print(f"### {title} ###")
    print('='*60)

def label(name):
    print(f"\n--- {name} ---")

def out(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))

def prefs_body(user_id, email, **overrides):
    body = {
        "user_id": user_id,
        "email": email,
        "timezone": "Europe/Berlin",
        "language": "de",
        "notification_enabled": True,
        "channels": {
            "email": {
                "enabled": True,
                "verified": True,
                "frequency": "immediate",
                "quiet_hours": {"enabled": True, "start": "22:00", "end": "07:00", "timezone": "Europe/Berlin"},
            },
            "push": {
                "enabled": True,
                "devices": [{"device_id": f"dev-{user_id}", "platform": "ios", "token": "apns-token"}],
                "quiet_hours": {"enabled": False},
            },
        },
        "preferences": {
            "marketing": False,
            "transactional": True,
            "reminders": True,
            "digest": {"enabled": True, "frequency": "daily", "time": "09:00"},
        },
    }
    body.update(overrides)
    return body

U1 = "usr_smoke001"
U2 = "usr_smoke002"

# ── Health ─────────────────────────────────────────────────────
section("HEALTH")

label("Liveness")
out(get("/health/live", base=ROOT))

label("Readiness (database + cache backend)")
out(get("/health/ready", base=ROOT))

# ── P1 Write ───────────────────────────────────────────────────
section("P1 — SUBMIT PREFERENCES")

label(f"P1-1: Create {U1}")
out(post("/users/preferences", prefs_body(U1, "smoke1@example.com")))

label(f"P1-2: Create {U2} without channels")
body = prefs_body(U2, "smoke2@example.com", notification_enabled=False)
del body["channels"]
out(post("/users/preferences", body))

label("P1-3: Invalid email")
out(post("/users/preferences", prefs_body(U1, "not-an-email")))

label("P1-4: Invalid digest time")
body = prefs_body(U1, "smoke1@example.com")
body["preferences"]["digest"]["time"] = "25:00"
out(post("/users/preferences", body))

# ── P2 Read-through ────────────────────────────────────────────
section("P2 — READ-THROUGH")

label(f"P2-1: Get {U1} (cache miss, DB read)")
out(get(f"/users/{U1}/preferences"))

label(f"P2-2: Get {U1} again (cache hit)")
out(get(f"/users/{U1}/preferences"))

label(f"P2-3: Get {U1} without channels")
out(get(f"/users/{U1}/preferences", params={"include_channels": "false"}))

label("P2-4: Get unknown user")
out(get("/users/usr_missing0/preferences"))

label(f"P2-5: Update {U1} then read (invalidated on write)")
out(post("/users/preferences", prefs_body(U1, "smoke1@example.com", language="fr")))
out(get(f"/users/{U1}/preferences"))

# ── P3 Batch ───────────────────────────────────────────────────
section("P3 — BATCH")

label("P3-1: Batch get (two known, one unknown)")
out(post("/users/preferences/batch", {"user_ids": [U1, U2, "usr_missing0"]}))

label("P3-2: Batch get with duplicates")
out(post("/users/preferences/batch", {"user_ids": [U1, U1]}))

label("P3-3: Batch get, empty list")
out(post("/users/preferences/batch", {"user_ids": []}))

# ── P4 Opt-out / last notification ─────────────────────────────
section("P4 — OPT-OUT AND LAST NOTIFICATION")

label(f"P4-1: Opt-out status {U1}")
out(get(f"/users/{U1}/opt-out-status"))

label(f"P4-2: Opt-out status {U2} (globally disabled)")
out(get(f"/users/{U2}/opt-out-status"))

label(f"P4-3: Record last notification for {U1}")
out(post(f"/users/{U1}/last-notification", {
    "channel": "email",
    "notification_id": "ntf_smoke_1",
    "sent_at": "2026-01-01T12:00:00Z",
}))

# ── P4b Users ──────────────────────────────────────────────────
section("P4b — USERS")

label("P4b-1: List users")
out(get("/users"))

label("P4b-2: Create user")
out(post("/users", {"email": "smoke3@example.com", "channels": {"email": True, "push": False}}))

label("P4b-3: Create user with taken email (expect 1006)")
out(post("/users", {"email": "smoke3@example.com", "channels": {"email": True, "push": False}}))

label(f"P4b-4: Turn push off for {U1}")
out(patch(f"/users/{U1}/preferences", {"push": False}))

label("P4b-5: Toggle with empty body (expect 1005)")
out(patch(f"/users/{U1}/preferences", {}))

# ── P5 Cache ───────────────────────────────────────────────────
section("P5 — CACHE")

label("P5-1: Clear cache (memory: cleared, redis: unsupported)")
out(post("/cache/clear"))

print("\n\n=== ALL TESTS COMPLETE ===\n")
