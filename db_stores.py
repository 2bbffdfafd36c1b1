"""
DB-backed store classes for the study planner.

Each store is scoped to one user id and translates between SQLite rows and
the records in models.py. Computations (streaks, progress, scheduling) never
reach in here; routes load a snapshot from a store and pass it along.
"""

from __future__ import annotations

import json
import time
from datetime import date, datetime
from typing import Optional

from database import get_db
from models import (
    Exam,
    Reminder,
    Schedule,
    ScheduleSlot,
    StudySession,
    UserProfile,
)
from progress import round_half_up


# ── Study Sessions ───────────────────────────────────────────────────


class SessionStoreDB:
    """Append-only log of study sessions."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    @staticmethod
    def _from_row(r) -> StudySession:
        return StudySession(
            subject=r["subject"],
            topic=r["topic"],
            duration=r["duration"],
            completed=bool(r["completed"]),
            date=r["date"],
        )

    def append(self, session: StudySession) -> int:
        db = get_db()
        cur = db.execute(
            "INSERT INTO study_sessions (user_id, subject, topic, duration, completed, date, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (self.user_id, session.subject, session.topic, session.duration,
             1 if session.completed else 0, session.date, datetime.now().isoformat()),
        )
        db.commit()
        return cur.lastrowid

    def list(self) -> list[StudySession]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM study_sessions WHERE user_id = ? ORDER BY date, id",
            (self.user_id,),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def for_date(self, day: str) -> list[StudySession]:
        db = get_db()
        rows = db.execute(
            "SELECT * FROM study_sessions WHERE user_id = ? AND date = ? ORDER BY id",
            (self.user_id, day),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def completed_dates(self) -> list[str]:
        db = get_db()
        rows = db.execute(
            "SELECT DISTINCT date FROM study_sessions WHERE user_id = ? AND completed = 1 ORDER BY date",
            (self.user_id,),
        ).fetchall()
        return [r["date"] for r in rows]

    def page(self, page: int, limit: int) -> tuple[list[dict], int]:
        """Newest first. Returns (items, total)."""
        db = get_db()
        total = db.execute(
            "SELECT COUNT(*) AS cnt FROM study_sessions WHERE user_id = ?", (self.user_id,),
        ).fetchone()["cnt"]
        rows = db.execute(
            "SELECT * FROM study_sessions WHERE user_id = ? ORDER BY date DESC, id DESC LIMIT ? OFFSET ?",
            (self.user_id, limit, (page - 1) * limit),
        ).fetchall()
        return [{"id": r["id"], **self._from_row(r).to_dict()} for r in rows], total

    def clear(self) -> None:
        db = get_db()
        db.execute("DELETE FROM study_sessions WHERE user_id = ?", (self.user_id,))
        db.commit()


# ── Profile ──────────────────────────────────────────────────────────


class ProfileStoreDB:
    """Profile spread over users, user_subjects and exams."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def load(self) -> Optional[UserProfile]:
        db = get_db()
        row = db.execute(
            "SELECT name, daily_goal, study_style FROM users WHERE id = ?", (self.user_id,),
        ).fetchone()
        if not row:
            return None
        subjects = [r["name"] for r in db.execute(
            "SELECT name FROM user_subjects WHERE user_id = ? ORDER BY position, id", (self.user_id,),
        ).fetchall()]
        exams = [Exam(subject=r["subject"], date=r["date"]) for r in db.execute(
            "SELECT subject, date FROM exams WHERE user_id = ? ORDER BY id", (self.user_id,),
        ).fetchall()]
        return UserProfile(
            name=row["name"],
            subjects=subjects,
            daily_goal=row["daily_goal"],
            study_style=row["study_style"],
            exams=exams,
        )

    def save(self, profile: UserProfile) -> None:
        """Replace the stored profile wholesale."""
        db = get_db()
        db.execute(
            "UPDATE users SET name = ?, daily_goal = ?, study_style = ? WHERE id = ?",
            (profile.name, profile.daily_goal, profile.study_style, self.user_id),
        )
        db.execute("DELETE FROM user_subjects WHERE user_id = ?", (self.user_id,))
        db.executemany(
            "INSERT INTO user_subjects (user_id, name, position) VALUES (?, ?, ?)",
            [(self.user_id, name, i) for i, name in enumerate(profile.subjects)],
        )
        db.execute("DELETE FROM exams WHERE user_id = ?", (self.user_id,))
        db.executemany(
            "INSERT INTO exams (user_id, subject, date) VALUES (?, ?, ?)",
            [(self.user_id, e.subject, e.date) for e in profile.exams],
        )
        db.commit()

    def add_subject(self, name: str) -> bool:
        name = name.strip()
        if not name:
            return False
        db = get_db()
        row = db.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 AS next_pos FROM user_subjects WHERE user_id = ?",
            (self.user_id,),
        ).fetchone()
        cur = db.execute(
            "INSERT OR IGNORE INTO user_subjects (user_id, name, position) VALUES (?, ?, ?)",
            (self.user_id, name, row["next_pos"]),
        )
        db.commit()
        return cur.rowcount > 0

    def remove_subject(self, name: str) -> bool:
        db = get_db()
        cur = db.execute(
            "DELETE FROM user_subjects WHERE user_id = ? AND name = ?", (self.user_id, name),
        )
        db.commit()
        return cur.rowcount > 0

    def add_exam(self, exam: Exam) -> None:
        db = get_db()
        db.execute(
            "INSERT INTO exams (user_id, subject, date) VALUES (?, ?, ?)",
            (self.user_id, exam.subject, exam.date),
        )
        db.commit()

    def remove_exam(self, subject: str, exam_date: str) -> bool:
        db = get_db()
        cur = db.execute(
            "DELETE FROM exams WHERE user_id = ? AND subject = ? AND date = ?",
            (self.user_id, subject, exam_date),
        )
        db.commit()
        return cur.rowcount > 0


# ── Schedule ─────────────────────────────────────────────────────────


class ScheduleStoreDB:
    """Single latest schedule per user; saving replaces it."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def save(self, schedule: Schedule, fallback_reason: str = "") -> None:
        db = get_db()
        db.execute(
            "INSERT INTO schedules (user_id, week_json, source, generated_at, updated_at, fallback_reason) "
            "VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET week_json = excluded.week_json, "
            "source = excluded.source, generated_at = excluded.generated_at, "
            "updated_at = excluded.updated_at, fallback_reason = excluded.fallback_reason",
            (self.user_id, json.dumps([d.to_dict() for d in schedule.week]), schedule.source,
             schedule.generated_at, datetime.now().isoformat(), fallback_reason or ""),
        )
        db.commit()

    def _row(self):
        return get_db().execute(
            "SELECT * FROM schedules WHERE user_id = ?", (self.user_id,),
        ).fetchone()

    def load(self) -> Optional[Schedule]:
        row = self._row()
        if not row:
            return None
        return Schedule.from_dict({
            "generatedAt": row["generated_at"],
            "week": json.loads(row["week_json"]),
        }, source=row["source"])

    def fallback_reason(self) -> str:
        row = self._row()
        return row["fallback_reason"] if row else ""

    def _update_day(self, day_date: str, mutate) -> Optional[ScheduleSlot]:
        schedule = self.load()
        if not schedule:
            return None
        day = schedule.day_for(day_date)
        if not day:
            return None
        slot = mutate(day)
        if slot is None:
            return None
        self.save(schedule, self.fallback_reason())
        return slot

    def toggle_slot(self, day_date: str, slot_id: str) -> Optional[ScheduleSlot]:
        """Flip a slot's completed flag. Returns the updated slot or None if not found."""
        def mutate(day):
            for slot in day.slots:
                if slot.id == slot_id:
                    slot.completed = not slot.completed
                    return slot
            return None
        return self._update_day(day_date, mutate)

    def add_custom_slot(self, day_date: str, subject: str, topic: str, duration: int) -> Optional[ScheduleSlot]:
        def mutate(day):
            slot = ScheduleSlot(
                id=f"custom-{int(time.time() * 1000)}-{len(day.slots)}",
                time="Custom",
                subject=subject,
                topic=topic,
                duration=duration,
                type="custom",
            )
            day.slots.append(slot)
            return slot
        return self._update_day(day_date, mutate)

    def clear(self) -> None:
        db = get_db()
        db.execute("DELETE FROM schedules WHERE user_id = ?", (self.user_id,))
        db.commit()


# ── Settings ─────────────────────────────────────────────────────────


class SettingsStoreDB:
    def __init__(self, user_id: int):
        self.user_id = user_id

    def _ensure(self):
        db = get_db()
        db.execute("INSERT OR IGNORE INTO settings (user_id) VALUES (?)", (self.user_id,))
        db.commit()

    def load(self) -> dict:
        self._ensure()
        r = get_db().execute("SELECT * FROM settings WHERE user_id = ?", (self.user_id,)).fetchone()
        return {
            "dark_mode": bool(r["dark_mode"]),
            "notifications": bool(r["notifications"]),
            "gemini_key": r["gemini_key"],
        }

    def update(self, dark_mode: bool | None = None, notifications: bool | None = None,
               gemini_key: str | None = None) -> dict:
        self._ensure()
        db = get_db()
        if dark_mode is not None:
            db.execute("UPDATE settings SET dark_mode = ? WHERE user_id = ?", (int(dark_mode), self.user_id))
        if notifications is not None:
            db.execute("UPDATE settings SET notifications = ? WHERE user_id = ?",
                       (int(notifications), self.user_id))
        if gemini_key is not None:
            db.execute("UPDATE settings SET gemini_key = ? WHERE user_id = ?",
                       (gemini_key.strip(), self.user_id))
        db.commit()
        return self.load()

    @property
    def gemini_key(self) -> str:
        return self.load()["gemini_key"]


# ── Reminders ────────────────────────────────────────────────────────


class ReminderStoreDB:
    def __init__(self, user_id: int):
        self.user_id = user_id

    def list(self) -> list[Reminder]:
        rows = get_db().execute(
            "SELECT * FROM reminders WHERE user_id = ? ORDER BY time, created_at", (self.user_id,),
        ).fetchall()
        return [Reminder(id=r["id"], time=r["time"], label=r["label"], enabled=bool(r["enabled"]))
                for r in rows]

    def add(self, reminder: Reminder) -> Reminder:
        db = get_db()
        db.execute(
            "INSERT INTO reminders (id, user_id, time, label, enabled, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (reminder.id, self.user_id, reminder.time, reminder.label, int(reminder.enabled),
             datetime.now().isoformat()),
        )
        db.commit()
        return reminder

    def toggle(self, reminder_id: str) -> Optional[bool]:
        """Flip enabled. Returns the new state or None if not found."""
        db = get_db()
        row = db.execute(
            "SELECT enabled FROM reminders WHERE id = ? AND user_id = ?", (reminder_id, self.user_id),
        ).fetchone()
        if not row:
            return None
        enabled = not bool(row["enabled"])
        db.execute("UPDATE reminders SET enabled = ? WHERE id = ? AND user_id = ?",
                   (int(enabled), reminder_id, self.user_id))
        db.commit()
        return enabled

    def delete(self, reminder_id: str) -> bool:
        db = get_db()
        cur = db.execute("DELETE FROM reminders WHERE id = ? AND user_id = ?", (reminder_id, self.user_id))
        db.commit()
        return cur.rowcount > 0

    def clear(self) -> None:
        db = get_db()
        db.execute("DELETE FROM reminders WHERE user_id = ?", (self.user_id,))
        db.commit()


# ── Admin aggregates ─────────────────────────────────────────────────


def admin_stats() -> dict:
    db = get_db()
    total_users = db.execute("SELECT COUNT(*) AS cnt FROM users WHERE role = 'user'").fetchone()["cnt"]
    minutes = db.execute(
        "SELECT COALESCE(SUM(duration), 0) AS total FROM study_sessions WHERE completed = 1"
    ).fetchone()["total"]
    active_schedules = db.execute(
        "SELECT COUNT(DISTINCT user_id) AS cnt FROM schedules"
    ).fetchone()["cnt"]
    return {
        "total_users": total_users,
        "total_hours": int(round_half_up(minutes / 60)),
        "active_schedules": active_schedules,
        "generated_on": date.today().isoformat(),
    }


def list_users(page: int, limit: int) -> tuple[list[dict], int]:
    db = get_db()
    total = db.execute("SELECT COUNT(*) AS cnt FROM users").fetchone()["cnt"]
    rows = db.execute(
        "SELECT id, name, email, role, daily_goal, created_at FROM users ORDER BY id LIMIT ? OFFSET ?",
        (limit, (page - 1) * limit),
    ).fetchall()
    return [dict(r) for r in rows], total
