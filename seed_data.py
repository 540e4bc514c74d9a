"""
Seed Script - creates demo users and a starter question bank.

Writes straight to the configured database (DATABASE_URL), then prints a
bearer token for each demo user. If an API URL is given, the student
token is checked against the running service.

Usage:
    python seed_data.py                              # Seed only
    python seed_data.py http://localhost:8000         # Seed and check the API
"""

import json
import sys

import httpx

from leave_portal.database import SessionLocal, create_tables
from leave_portal.models import QuestionBankItem, User
from leave_portal.models.user import ROLE_ADMIN, ROLE_STUDENT
from leave_portal.security import create_access_token

DEMO_USERS = [
    {"name": "Portal Admin", "email": "admin@college.edu", "role": ROLE_ADMIN,
     "department": "Administration"},
    {"name": "Asha Verma", "email": "asha@college.edu", "role": ROLE_STUDENT,
     "department": "Computer Science"},
    {"name": "Rahul Nair", "email": "rahul@college.edu", "role": ROLE_STUDENT,
     "department": "Information Technology"},
]

# (subject, difficulty, question, options, correct index)
STARTER_QUESTIONS = [
    ("Python", "Easy", "Which keyword defines a function in Python?",
     ["func", "def", "function", "lambda"], 1),
    ("Python", "Easy", "What is the output of len([1, 2, 3])?",
     ["2", "3", "4", "Error"], 1),
    ("Python", "Easy", "Which type is immutable?",
     ["list", "dict", "tuple", "set"], 2),
    ("Python", "Easy", "How do you start a comment in Python?",
     ["//", "#", "/*", "--"], 1),
    ("Python", "Easy", "What does 3 // 2 evaluate to?",
     ["1.5", "1", "2", "0"], 1),
    ("Python", "Medium", "What does a generator function use to produce values?",
     ["return", "yield", "emit", "next"], 1),
    ("Python", "Medium", "Which method is called when an object is created?",
     ["__new__ then __init__", "__init__ only", "__call__", "__create__"], 0),
    ("Python", "Medium", "What is the result of bool([])?",
     ["True", "False", "None", "Error"], 1),
    ("Data Structures", "Easy", "Which structure is first-in, first-out?",
     ["Stack", "Queue", "Tree", "Graph"], 1),
    ("Data Structures", "Easy", "Which structure is last-in, first-out?",
     ["Queue", "Heap", "Stack", "Linked list"], 2),
    ("Data Structures", "Medium", "Average lookup time in a hash table is:",
     ["O(1)", "O(log n)", "O(n)", "O(n log n)"], 0),
    ("Data Structures", "Medium", "A binary heap is usually stored in a:",
     ["Linked list", "Array", "Hash map", "Trie"], 1),
    ("Data Structures", "Medium", "In-order traversal of a BST yields keys in:",
     ["Random order", "Descending order", "Ascending order", "Level order"], 2),
    ("DBMS", "Easy", "Which SQL statement reads rows from a table?",
     ["INSERT", "UPDATE", "SELECT", "DELETE"], 2),
    ("DBMS", "Medium", "Which normal form removes transitive dependencies?",
     ["1NF", "2NF", "3NF", "BCNF"], 2),
    ("Computer Networks", "Easy", "Which protocol resolves names to IP addresses?",
     ["HTTP", "DNS", "FTP", "SMTP"], 1),
    ("Computer Networks", "Medium", "TCP guarantees:",
     ["Ordered delivery", "Lowest latency", "Broadcast", "No handshake"], 0),
]


def seed_users(db) -> list:
    users = []
    for data in DEMO_USERS:
        user = db.query(User).filter(User.email == data["email"]).first()
        if user is None:
            user = User(**data)
            db.add(user)
        users.append(user)
    db.commit()
    return users


def seed_questions(db) -> int:
    added = 0
    for subject, difficulty, question, options, correct in STARTER_QUESTIONS:
        exists = db.query(QuestionBankItem).filter(
            QuestionBankItem.question == question,
            QuestionBankItem.subject == subject
        ).first()
        if exists:
            continue
        db.add(QuestionBankItem(
            question=question,
            options=json.dumps(options),
            correct_answer=correct,
            subject=subject,
            difficulty=difficulty,
        ))
        added += 1
    db.commit()
    return added


def check_api(api_url: str, token: str):
    with httpx.Client(timeout=30.0) as client:
        resp = client.get(f"{api_url}/api/leaves/my-leaves",
                          headers={"Authorization": f"Bearer {token}"})
        resp.raise_for_status()
        data = resp.json().get("data", {})
    print(f"API check OK: student has {data.get('leave_balance', '?')} leave days left")


def main():
    create_tables()
    db = SessionLocal()
    try:
        users = seed_users(db)
        added = seed_questions(db)
        tokens = [(u, create_access_token(u.id, u.role)) for u in users]
    finally:
        db.close()

    print("=" * 60)
    print("SEED SUMMARY")
    print("=" * 60)
    print(f"  Users:                 {len(users)}")
    print(f"  Questions added:       {added}")
    print("=" * 60)
    print()
    for user, token in tokens:
        print(f"  {user.role:<8} {user.email}")
        print(f"           {token}")
    print()

    if len(sys.argv) > 1:
        student_token = next(t for u, t in tokens if u.role == ROLE_STUDENT)
        check_api(sys.argv[1].rstrip("/"), student_token)


if __name__ == "__main__":
    main()
