import unittest

from investmate.db import (
    INVESTOR,
    STARTUP,
    ConnectionStatus,
    DuplicateConnectionError,
    DuplicateEmailError,
    PostgresDbClient,
    StartupFilter,
)


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    def setUp(self):
        self.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def add_startup(self, email: str, **data) -> dict:
        user = self.db.create_user("Founder", email, "hash", STARTUP)
        return self.db.create_profile(STARTUP, user.user_id, data)

    def test_create_and_get_user(self):
        user = self.db.create_user("Ada", "ada@example.com", "hash", STARTUP)
        self.assertEqual(self.db.get_user(user.user_id).email, "ada@example.com")
        self.assertEqual(self.db.get_user_by_email("ada@example.com").user_id, user.user_id)
        self.assertNotIn("password", user.as_dict())

        with self.assertRaises(DuplicateEmailError):
            self.db.create_user("Other", "ada@example.com", "hash", INVESTOR)

    def test_update_user_password(self):
        user = self.db.create_user("Ada", "ada@example.com", "old", STARTUP)
        self.db.update_user_password(user.user_id, "new")
        self.assertEqual(self.db.get_user(user.user_id).password_hash, "new")

    def test_profile_update_keeps_identity(self):
        profile = self.add_startup("ada@example.com", startupName="PayFast")
        user_id = profile["userId"]

        updated = self.db.update_profile(
            STARTUP, user_id, {"_id": "other", "tagline": "Fast", "industry": "FinTech"}
        )
        self.assertEqual(updated["_id"], profile["_id"])
        self.assertEqual(updated["startupName"], "PayFast")
        self.assertEqual(updated["tagline"], "Fast")
        self.assertEqual(self.db.get_profile_by_id(STARTUP, profile["_id"])["industry"], "FinTech")
        self.assertIsNone(self.db.update_profile(INVESTOR, user_id, {"firm": "x"}))

    def test_list_startups_filters(self):
        self.add_startup(
            "a@example.com", startupName="PayFast", industry="FinTech", location="Pune"
        )
        self.add_startup(
            "b@example.com", startupName="CareLoop", industry="HealthTech", problem="50%_off"
        )
        self.db.create_profile(STARTUP, None, {"startupName": "Orphan", "industry": "FinTech"})

        rows = self.db.list_startups(StartupFilter(industry="all"))
        self.assertEqual([r["startupName"] for r in rows], ["CareLoop", "PayFast"])
        self.assertEqual(rows[0]["userId"]["name"], "Founder")

        rows = self.db.list_startups(StartupFilter(industry="FinTech"))
        self.assertEqual([r["startupName"] for r in rows], ["PayFast"])

        rows = self.db.list_startups(StartupFilter(location="PUN"))
        self.assertEqual([r["startupName"] for r in rows], ["PayFast"])

        rows = self.db.list_startups(StartupFilter(search="%_"))
        self.assertEqual([r["startupName"] for r in rows], ["CareLoop"])

    def test_find_startups_and_investors(self):
        self.add_startup("a@example.com", startupName="PayFast", industry="FinTech")
        self.add_startup("b@example.com", startupName="CareLoop", industry="HealthTech")
        for i, sectors in enumerate((["FinTech", "AI"], "HealthTech", ["Climate"])):
            user = self.db.create_user(f"VC {i}", f"vc{i}@example.com", "hash", INVESTOR)
            self.db.create_profile(INVESTOR, user.user_id, {"preferredSectors": sectors})

        startups = self.db.find_startups(industries=["fintech", "Climate"])
        self.assertEqual([s["startupName"] for s in startups], ["PayFast"])
        self.assertEqual(len(self.db.find_startups(limit=1)), 1)

        investors = self.db.find_investors(sector="health")
        self.assertEqual(len(investors), 1)
        self.assertEqual(investors[0]["preferredSectors"], "HealthTech")
        self.assertEqual(len(self.db.find_investors()), 3)

    def test_scalar_sectors_are_stored(self):
        user = self.db.create_user("VC", "vc@example.com", "hash", INVESTOR)
        self.db.create_profile(INVESTOR, user.user_id, {"preferredSectors": ["AI"]})

        updated = self.db.update_profile(INVESTOR, user.user_id, {"preferredSectors": 5})
        self.assertEqual(updated["preferredSectors"], 5)
        self.assertEqual(len(self.db.find_investors(sector="5")), 1)
        self.assertEqual(self.db.find_investors(sector="AI"), [])

    def test_connections(self):
        record = self.db.create_connection("inv-1", "st-1", "Hello")
        self.assertEqual(record.status, ConnectionStatus.PENDING)

        with self.assertRaises(DuplicateConnectionError):
            self.db.create_connection("inv-1", "st-1")
        self.db.create_connection("inv-2", "st-1")

        self.assertEqual(len(self.db.list_connections(startup_id="st-1")), 2)
        self.assertEqual(len(self.db.list_connections(investor_id="inv-1")), 1)

        updated = self.db.update_connection_status(
            record.connection_id, ConnectionStatus.ACCEPTED
        )
        self.assertEqual(updated.status, ConnectionStatus.ACCEPTED)
        self.assertEqual(
            self.db.get_connection(record.connection_id).as_dict()["status"], "accepted"
        )
        self.assertIsNone(self.db.update_connection_status("missing", ConnectionStatus.REJECTED))


if __name__ == "__main__":
    unittest.main()
