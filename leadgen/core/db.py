"""SQLite database operations."""

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = Path("data/leads.db")


def get_connection(db_path: Path = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Get a database connection with row factory."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now().isoformat()


def init_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """Initialize database with schema."""
    conn = get_connection(db_path)

    conn.executescript("""
        CREATE TABLE IF NOT EXISTS companies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            location TEXT,
            email_domain TEXT,
            website TEXT,
            industry TEXT,
            size TEXT,

            -- Raw provider payloads, kept separate
            hunter_data TEXT,
            apollo_data TEXT,

            status TEXT DEFAULT 'new',
            created_at TIMESTAMP,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS jobs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_id INTEGER REFERENCES companies(id),
            title TEXT NOT NULL,
            location TEXT,
            posted_date TEXT,
            source TEXT,
            keyword TEXT,
            status TEXT DEFAULT 'new',
            created_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS contacts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_id INTEGER REFERENCES companies(id),
            first_name TEXT,
            last_name TEXT,
            email TEXT UNIQUE NOT NULL,
            title TEXT,
            linkedin TEXT,
            confidence INTEGER,
            source TEXT,

            -- Lifecycle
            status TEXT DEFAULT 'new',
            do_not_contact INTEGER DEFAULT 0,
            last_contact_date TIMESTAMP,
            gmail_message_id TEXT,

            created_at TIMESTAMP,
            updated_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS emails_sent (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER REFERENCES contacts(id),
            gmail_message_id TEXT,
            thread_id TEXT,
            subject TEXT,
            body TEXT,
            sent_at TIMESTAMP,
            status TEXT DEFAULT 'sent'
        );

        CREATE TABLE IF NOT EXISTS email_replies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER REFERENCES contacts(id),
            gmail_message_id TEXT UNIQUE NOT NULL,
            subject TEXT,
            from_address TEXT,
            body TEXT,
            received_at TIMESTAMP,
            intent TEXT,
            responded INTEGER DEFAULT 0
        );

        CREATE TABLE IF NOT EXISTS meetings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            contact_id INTEGER REFERENCES contacts(id),
            calendar_event_id TEXT,
            meeting_time TIMESTAMP,
            duration_minutes INTEGER,
            meet_link TEXT,
            status TEXT,
            notes TEXT,
            created_at TIMESTAMP
        );

        CREATE INDEX IF NOT EXISTS idx_companies_name ON companies(name);
        CREATE INDEX IF NOT EXISTS idx_contacts_status ON contacts(status);
        CREATE INDEX IF NOT EXISTS idx_emails_sent_sent_at ON emails_sent(sent_at);
        CREATE INDEX IF NOT EXISTS idx_email_replies_contact ON email_replies(contact_id);
    """)

    conn.commit()
    conn.close()


# --- companies -------------------------------------------------------------

def insert_company(db_path: Path, name: str, location: Optional[str] = None) -> int:
    """Insert a company and return its id."""
    conn = get_connection(db_path)
    now = _now()
    cursor = conn.execute(
        """
        INSERT INTO companies (name, location, status, created_at, updated_at)
        VALUES (?, ?, 'new', ?, ?)
        """,
        (name, location, now, now)
    )
    conn.commit()
    company_id = cursor.lastrowid
    conn.close()
    return company_id


def get_company_by_name(db_path: Path, name: str) -> Optional[sqlite3.Row]:
    """Get a company by exact name."""
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM companies WHERE name = ?", (name,)).fetchone()
    conn.close()
    return row


def get_company_by_id(db_path: Path, company_id: int) -> Optional[sqlite3.Row]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM companies WHERE id = ?", (company_id,)).fetchone()
    conn.close()
    return row


def get_companies_to_enrich(db_path: Path, limit: int = 50) -> list[sqlite3.Row]:
    """Companies that are new or still have no resolved email domain."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """
        SELECT * FROM companies
        WHERE status = 'new' OR email_domain IS NULL
        ORDER BY id
        LIMIT ?
        """,
        (limit,)
    ).fetchall()
    conn.close()
    return rows


def update_company_hunter_data(db_path: Path, company_id: int, domain: str, data: dict) -> None:
    """Store the Hunter.io domain and raw payload."""
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE companies SET email_domain = ?, hunter_data = ?, updated_at = ? WHERE id = ?",
        (domain, json.dumps(data), _now(), company_id)
    )
    conn.commit()
    conn.close()


def update_company_apollo_data(db_path: Path, company_id: int, data: dict) -> None:
    """Store the raw Apollo.io organization payload."""
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE companies SET apollo_data = ?, website = COALESCE(website, ?), "
        "industry = COALESCE(industry, ?), size = COALESCE(size, ?), updated_at = ? WHERE id = ?",
        (json.dumps(data), data.get("website"), data.get("industry"),
         str(data["size"]) if data.get("size") is not None else None,
         _now(), company_id)
    )
    conn.commit()
    conn.close()


def update_company_status(db_path: Path, company_id: int, status: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE companies SET status = ?, updated_at = ? WHERE id = ?",
        (status, _now(), company_id)
    )
    conn.commit()
    conn.close()


# --- jobs ------------------------------------------------------------------

def job_exists(db_path: Path, company_id: int, title: str, posted_date: Optional[str]) -> bool:
    """Check if a job posting has been saved already."""
    conn = get_connection(db_path)
    cursor = conn.execute(
        "SELECT 1 FROM jobs WHERE company_id = ? AND title = ? AND posted_date IS ?",
        (company_id, title, posted_date)
    )
    exists = cursor.fetchone() is not None
    conn.close()
    return exists


def insert_job(
    db_path: Path,
    company_id: int,
    title: str,
    location: Optional[str],
    posted_date: Optional[str],
    source: str,
    keyword: str,
) -> int:
    """Insert a job posting and return its id."""
    conn = get_connection(db_path)
    cursor = conn.execute(
        """
        INSERT INTO jobs (company_id, title, location, posted_date, source, keyword, status, created_at)
        VALUES (?, ?, ?, ?, ?, ?, 'new', ?)
        """,
        (company_id, title, location, posted_date, source, keyword, _now())
    )
    conn.commit()
    job_id = cursor.lastrowid
    conn.close()
    return job_id


# --- contacts --------------------------------------------------------------

def insert_contact(
    db_path: Path,
    company_id: Optional[int],
    email: str,
    first_name: Optional[str],
    last_name: Optional[str],
    title: Optional[str],
    linkedin: Optional[str],
    confidence: Optional[int],
    source: str,
    status: str = "new",
) -> Optional[int]:
    """Insert a contact. Returns contact_id or None if the email already exists."""
    conn = get_connection(db_path)
    now = _now()
    try:
        cursor = conn.execute(
            """
            INSERT INTO contacts
            (company_id, first_name, last_name, email, title, linkedin, confidence, source,
             status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (company_id, first_name, last_name, email, title, linkedin, confidence, source,
             status, now, now)
        )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        return None
    finally:
        conn.close()


def get_contact_by_id(db_path: Path, contact_id: int) -> Optional[sqlite3.Row]:
    """Get a contact (with its company name) by ID."""
    conn = get_connection(db_path)
    row = conn.execute(
        """
        SELECT c.*, comp.name AS company_name, comp.email_domain
        FROM contacts c
        LEFT JOIN companies comp ON c.company_id = comp.id
        WHERE c.id = ?
        """,
        (contact_id,)
    ).fetchone()
    conn.close()
    return row


def get_contact_by_email(db_path: Path, email: str) -> Optional[sqlite3.Row]:
    """Get a contact by email."""
    conn = get_connection(db_path)
    row = conn.execute(
        """
        SELECT c.*, comp.name AS company_name
        FROM contacts c
        LEFT JOIN companies comp ON c.company_id = comp.id
        WHERE c.email = ?
        """,
        (email,)
    ).fetchone()
    conn.close()
    return row


def get_contacts_ready_for_outreach(
    db_path: Path,
    min_confidence: int,
    limit: int
) -> list[sqlite3.Row]:
    """Ready contacts, highest confidence first, ties by id ascending."""
    if limit <= 0:
        return []

    conn = get_connection(db_path)
    rows = conn.execute(
        """
        SELECT c.*, comp.name AS company_name, comp.email_domain
        FROM contacts c
        LEFT JOIN companies comp ON c.company_id = comp.id
        WHERE c.status = 'ready'
        AND c.do_not_contact = 0
        AND c.confidence >= ?
        ORDER BY c.confidence DESC, c.id ASC
        LIMIT ?
        """,
        (min_confidence, limit)
    ).fetchall()
    conn.close()
    return rows


def update_contact_status(db_path: Path, contact_id: int, status: str) -> None:
    """Update a contact's status."""
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE contacts SET status = ?, updated_at = ? WHERE id = ?",
        (status, _now(), contact_id)
    )
    conn.commit()
    conn.close()


def set_do_not_contact(db_path: Path, contact_id: int) -> None:
    """Permanently suppress automated email to a contact."""
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE contacts SET do_not_contact = 1, updated_at = ? WHERE id = ?",
        (_now(), contact_id)
    )
    conn.commit()
    conn.close()


# --- outbound email --------------------------------------------------------

def record_email_sent(
    db_path: Path,
    contact_id: int,
    subject: str,
    body: str,
    message_id: str,
    thread_id: Optional[str],
    sent_at: Optional[datetime] = None,
) -> int:
    """Record a successful send and move the contact to 'contacted'."""
    sent_at_iso = (sent_at or datetime.now()).isoformat()
    conn = get_connection(db_path)

    cursor = conn.execute(
        """
        INSERT INTO emails_sent (contact_id, gmail_message_id, thread_id, subject, body, sent_at, status)
        VALUES (?, ?, ?, ?, ?, ?, 'sent')
        """,
        (contact_id, message_id, thread_id, subject, body, sent_at_iso)
    )
    conn.execute(
        """
        UPDATE contacts
        SET status = 'contacted', last_contact_date = ?, gmail_message_id = ?, updated_at = ?
        WHERE id = ?
        """,
        (sent_at_iso, message_id, sent_at_iso, contact_id)
    )

    conn.commit()
    email_id = cursor.lastrowid
    conn.close()
    return email_id


def count_sent_today(db_path: Path, today: Optional[date] = None) -> int:
    """Count emails sent on the given calendar date (default: today, local time)."""
    day = (today or datetime.now().date()).isoformat()
    conn = get_connection(db_path)
    cursor = conn.execute(
        "SELECT COUNT(*) FROM emails_sent WHERE date(sent_at) = ?",
        (day,)
    )
    count = cursor.fetchone()[0]
    conn.close()
    return count


def count_emails_to_contact(db_path: Path, contact_id: int) -> int:
    conn = get_connection(db_path)
    count = conn.execute(
        "SELECT COUNT(*) FROM emails_sent WHERE contact_id = ?", (contact_id,)
    ).fetchone()[0]
    conn.close()
    return count


def get_sent_emails_since(db_path: Path, since: datetime) -> list[sqlite3.Row]:
    """Sent emails newer than `since`, oldest first."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """
        SELECT * FROM emails_sent
        WHERE status = 'sent' AND sent_at > ?
        ORDER BY sent_at
        """,
        (since.isoformat(),)
    ).fetchall()
    conn.close()
    return rows


# --- inbound replies -------------------------------------------------------

def insert_reply(
    db_path: Path,
    contact_id: int,
    gmail_message_id: str,
    subject: Optional[str],
    from_address: Optional[str],
    body: str,
    intent: str,
    received_at: Optional[datetime] = None,
) -> Optional[int]:
    """Insert a reply. Returns reply_id or None if the message was already stored."""
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(
            """
            INSERT INTO email_replies
            (contact_id, gmail_message_id, subject, from_address, body, received_at, intent)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (contact_id, gmail_message_id, subject, from_address, body,
             (received_at or datetime.now()).isoformat(), intent)
        )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        return None
    finally:
        conn.close()


def is_reply_processed(db_path: Path, gmail_message_id: str) -> bool:
    conn = get_connection(db_path)
    exists = conn.execute(
        "SELECT 1 FROM email_replies WHERE gmail_message_id = ?", (gmail_message_id,)
    ).fetchone() is not None
    conn.close()
    return exists


def has_unsubscribed(db_path: Path, contact_id: int) -> bool:
    """True if any stored reply from the contact was classified unsubscribe."""
    conn = get_connection(db_path)
    exists = conn.execute(
        "SELECT 1 FROM email_replies WHERE contact_id = ? AND intent = 'unsubscribe'",
        (contact_id,)
    ).fetchone() is not None
    conn.close()
    return exists


def get_reply_by_id(db_path: Path, reply_id: int) -> Optional[sqlite3.Row]:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM email_replies WHERE id = ?", (reply_id,)).fetchone()
    conn.close()
    return row


def get_replies_for_contact(db_path: Path, contact_id: int) -> list[sqlite3.Row]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM email_replies WHERE contact_id = ? ORDER BY id", (contact_id,)
    ).fetchall()
    conn.close()
    return rows


# --- meetings --------------------------------------------------------------

def record_meeting(
    db_path: Path,
    contact_id: int,
    calendar_event_id: str,
    meeting_time: datetime,
    duration_minutes: int,
    meet_link: Optional[str] = None,
    notes: Optional[str] = None,
) -> int:
    """Store a scheduled meeting and move the contact to 'meeting_scheduled'."""
    conn = get_connection(db_path)
    now = _now()

    cursor = conn.execute(
        """
        INSERT INTO meetings
        (contact_id, calendar_event_id, meeting_time, duration_minutes, meet_link, status, notes, created_at)
        VALUES (?, ?, ?, ?, ?, 'scheduled', ?, ?)
        """,
        (contact_id, calendar_event_id, meeting_time.isoformat(), duration_minutes,
         meet_link, notes, now)
    )
    conn.execute(
        "UPDATE contacts SET status = 'meeting_scheduled', updated_at = ? WHERE id = ?",
        (now, contact_id)
    )

    conn.commit()
    meeting_id = cursor.lastrowid
    conn.close()
    return meeting_id


def get_meetings_for_contact(db_path: Path, contact_id: int) -> list[sqlite3.Row]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM meetings WHERE contact_id = ? ORDER BY meeting_time", (contact_id,)
    ).fetchall()
    conn.close()
    return rows


# --- stats -----------------------------------------------------------------

def get_pipeline_stats(db_path: Path) -> dict:
    """Get pipeline statistics."""
    conn = get_connection(db_path)

    stats = {"contacts": {}, "replies": {}}

    for row in conn.execute("SELECT status, COUNT(*) AS count FROM contacts GROUP BY status"):
        stats["contacts"][row["status"]] = row["count"]

    for row in conn.execute("SELECT intent, COUNT(*) AS count FROM email_replies GROUP BY intent"):
        stats["replies"][row["intent"]] = row["count"]

    stats["companies"] = conn.execute("SELECT COUNT(*) FROM companies").fetchone()[0]
    stats["jobs"] = conn.execute("SELECT COUNT(*) FROM jobs").fetchone()[0]
    stats["meetings_scheduled"] = conn.execute(
        "SELECT COUNT(*) FROM meetings WHERE status = 'scheduled'"
    ).fetchone()[0]
    stats["do_not_contact"] = conn.execute(
        "SELECT COUNT(*) FROM contacts WHERE do_not_contact = 1"
    ).fetchone()[0]

    conn.close()

    stats["sent_today"] = count_sent_today(db_path)
    return stats
