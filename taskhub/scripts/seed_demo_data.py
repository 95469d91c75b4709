"""
Demo data for local development.

Creates users (all sharing one password), projects with a mix of ADMIN /
MANAGER / USER members, and tasks spread over every status and priority.

    python -m taskhub.scripts.seed_demo_data --users 12 --projects 4
"""
import argparse
import asyncio
import random
from datetime import datetime, timedelta, timezone

from faker import Faker
from sqlalchemy import delete

from taskhub.database import AsyncSessionLocal, create_tables
from taskhub.models.project import Project, ProjectMember, ProjectStatus
from taskhub.models.tasks import Task, TaskPriority, TaskStatus
from taskhub.models.user import RefreshToken, User, UserRole
from taskhub.schemas.project import MemberCreate, ProjectCreate
from taskhub.schemas.task import TaskCreate
from taskhub.services import projects as project_service
from taskhub.services import tasks as task_service
from taskhub.utils.security import get_password_hash

fake = Faker()

DEMO_PASSWORD = "password123"

PROJECT_THEMES = {
    "Website Relaunch": [
        "Audit existing page templates",
        "Design new navigation",
        "Migrate blog content",
        "Set up redirects for retired URLs",
        "Accessibility review",
    ],
    "Mobile App v2": [
        "Offline mode for task lists",
        "Push notification opt-in flow",
        "Crash reporting integration",
        "App store screenshots",
    ],
    "Quarterly Planning": [
        "Collect team objectives",
        "Draft budget proposal",
        "Schedule planning workshop",
        "Publish roadmap summary",
    ],
    "Infrastructure Upgrade": [
        "Upgrade database to latest major version",
        "Rotate service credentials",
        "Load test staging environment",
        "Document disaster recovery runbook",
    ],
    "Customer Onboarding": [
        "Write welcome email sequence",
        "Record product walkthrough video",
        "Build onboarding checklist",
    ],
}


async def clear_existing_data(db):
    print("🗑️  Clearing existing data...")
    for model in (Task, ProjectMember, Project, RefreshToken, User):
        await db.execute(delete(model))
    await db.commit()
    print("✅ Existing data cleared")


async def create_users(db, count):
    print(f"👥 Creating {count} users...")
    password_hash = get_password_hash(DEMO_PASSWORD)
    used_usernames = set()
    users = []

    for _ in range(count):
        while True:
            first_name, last_name = fake.first_name(), fake.last_name()
            username = f"{first_name}.{last_name}".lower()[:20]
            if username not in used_usernames:
                used_usernames.add(username)
                break

        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=UserRole.USER,
        )
        db.add(user)
        users.append(user)

    await db.commit()
    print(f"✅ Created {len(users)} users (password: {DEMO_PASSWORD})")
    return users


async def create_projects(db, users, count):
    print(f"📁 Creating {count} projects...")
    themes = random.sample(list(PROJECT_THEMES), k=min(count, len(PROJECT_THEMES)))
    created = []

    for name in themes:
        owner, *others = random.sample(users, k=min(len(users), random.randint(3, 6)))
        project = await project_service.create_project(
            db, ProjectCreate(name=name, description=fake.sentence(nb_words=12)), owner.id
        )

        for member in others:
            role = random.choices(
                [UserRole.ADMIN, UserRole.MANAGER, UserRole.USER], weights=[1, 2, 5]
            )[0]
            await project_service.add_member(
                db, project.id, owner.id, MemberCreate(user_id=member.id, role=role)
            )

        project.status = random.choice(list(ProjectStatus))
        await db.commit()
        created.append((project, owner, [owner, *others]))

    print(f"✅ Created {len(created)} projects")
    return created


async def create_tasks(db, projects):
    print("📝 Creating tasks...")
    total = 0
    now = datetime.now(timezone.utc)

    for project, owner, members in projects:
        for title in PROJECT_THEMES[project.name]:
            assignee = random.choice(members + [None])
            task = await task_service.create_task(
                db,
                project.id,
                owner.id,
                TaskCreate(
                    title=title,
                    description=fake.paragraph(nb_sentences=2),
                    priority=random.choice(list(TaskPriority)),
                    assigned_to_id=assignee.id if assignee else None,
                    due_date=now + timedelta(days=random.randint(-10, 45)),
                ),
            )
            task.status = random.choice(list(TaskStatus))
            total += 1
        await db.commit()

    print(f"✅ Created {total} tasks")
    return total


async def main(user_count: int, project_count: int, reset: bool):
    print("\n" + "=" * 60)
    print("🚀 TASKHUB DEMO DATA")
    print("=" * 60 + "\n")

    await create_tables()

    async with AsyncSessionLocal() as db:
        try:
            if reset:
                await clear_existing_data(db)
            users = await create_users(db, user_count)
            projects = await create_projects(db, users, project_count)
            task_count = await create_tasks(db, projects)
        except Exception as e:
            print(f"\n❌ ERROR: {e}")
            await db.rollback()
            raise

    print("\n📊 Summary:")
    print(f"   - Users: {len(users)}")
    print(f"   - Projects: {len(projects)}")
    print(f"   - Tasks: {task_count}")
    print("\n✅ Ready to log in with any of the users above.\n")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Populate the database with demo data")
    parser.add_argument("--users", type=int, default=12)
    parser.add_argument("--projects", type=int, default=4)
    parser.add_argument("--no-reset", action="store_true", help="keep existing rows")
    args = parser.parse_args()
    asyncio.run(main(args.users, args.projects, reset=not args.no_reset))
