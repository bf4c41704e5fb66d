# opportunity_hub/ingest/sample_data.py
"""
Bundled MLH listings served when the live source is disabled or unreachable.

Dates are anchored to midnight UTC of the current day, so repeated calls on
the same day return identical records and a re-sync sees no changes.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from opportunity_hub.core.clock import utcnow
from opportunity_hub.ingest.base import EventDates, Location, RawOpportunity, SourceInfo

PLATFORM = "MLH"


def _prizes(first: str, second: str, third: str, labels=("Best Overall Project", "Runner Up", "Third Place")):
    return [
        {"position": "1st Place", "amount": first, "description": labels[0]},
        {"position": "2nd Place", "amount": second, "description": labels[1]},
        {"position": "3rd Place", "amount": third, "description": labels[2]},
    ]


def sample_opportunities(now: Optional[datetime] = None) -> List[RawOpportunity]:
    now = now or utcnow()
    today = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)

    def day(offset: int) -> datetime:
        return today + timedelta(days=offset)

    def source(source_id: str) -> SourceInfo:
        return SourceInfo(platform=PLATFORM, source_id=source_id, last_updated=now)

    return [
        RawOpportunity(
            title="HackMIT 2026 - Innovation Challenge",
            description=(
                "Join us for the premier hackathon at MIT! Build innovative solutions that can "
                "change the world. 48 hours of coding, mentorship, and networking with top tech companies."
            ),
            organizer="MIT Computer Science Department",
            mode="hybrid",
            location=Location(city="Cambridge", state="MA", country="USA", venue="MIT Campus"),
            dates=EventDates(start_date=day(15), end_date=day(17), registration_deadline=day(5)),
            skills_required=["JavaScript", "Python", "React", "Node.js", "Machine Learning", "AI"],
            external_url="https://hackmit.org",
            source=source("hackmit-2026"),
            tags=["mlh", "hackathon", "student", "competition", "innovation"],
            eligibility={"education_level": ["undergraduate", "graduate"],
                         "other_requirements": "Must be a current student"},
            registration={"is_open": True, "fee": {"amount": 0, "currency": "USD"}, "max_participants": 1000},
            difficulty_level="intermediate",
            team_size={"min": 1, "max": 4},
            themes=["AI/ML", "Web Development", "Mobile Apps", "Blockchain", "IoT"],
            prizes=_prizes("$10000", "$5000", "$2500"),
        ),
        RawOpportunity(
            title="Stanford TreeHacks 2026 - Build the Future",
            description=(
                "Stanford's premier hackathon brings together the brightest minds to tackle real-world "
                "problems. Focus on sustainability, healthcare, and social impact projects."
            ),
            organizer="Stanford University",
            mode="offline",
            location=Location(city="Stanford", state="CA", country="USA", venue="Stanford University Campus"),
            dates=EventDates(start_date=day(45), end_date=day(48), registration_deadline=day(31)),
            skills_required=["Python", "TensorFlow", "React", "Swift", "Data Science", "UI/UX"],
            external_url="https://treehacks.com",
            source=source("treehacks-2026"),
            tags=["mlh", "hackathon", "sustainability", "social-impact", "stanford"],
            eligibility={"education_level": ["undergraduate", "graduate", "high_school"],
                         "other_requirements": "Open to all students worldwide"},
            registration={"is_open": True, "fee": {"amount": 0, "currency": "USD"}, "max_participants": 1500},
            team_size={"min": 1, "max": 4},
            themes=["Sustainability", "Healthcare", "Education", "Social Impact", "Climate Tech"],
            prizes=_prizes("$15000", "$8000", "$4000", ("Grand Prize Winner", "Runner Up", "Third Place")),
        ),
        RawOpportunity(
            title="PennApps XXVI - The Ultimate Hackathon Experience",
            description=(
                "America's first student-run hackathon continues its legacy! Join 1000+ hackers for an "
                "incredible weekend of innovation, learning, and fun at the University of Pennsylvania."
            ),
            organizer="University of Pennsylvania",
            mode="hybrid",
            location=Location(city="Philadelphia", state="PA", country="USA", venue="University of Pennsylvania"),
            dates=EventDates(start_date=day(30), end_date=day(32), registration_deadline=day(23)),
            skills_required=["JavaScript", "Python", "Java", "C++", "Mobile Development", "Web Development"],
            external_url="https://pennapps.com",
            source=source("pennapps-xxvi-2026"),
            tags=["mlh", "hackathon", "student", "competition", "pennapps"],
            eligibility={"education_level": ["undergraduate", "graduate", "high_school"],
                         "other_requirements": "Must be a student"},
            registration={"is_open": True, "fee": {"amount": 0, "currency": "USD"}, "max_participants": 1200},
            team_size={"min": 1, "max": 4},
            themes=["Fintech", "Gaming", "Productivity", "Entertainment", "Developer Tools"],
            prizes=_prizes("$8000", "$4000", "$2000", ("Best Overall Hack", "Most Creative", "Best Technical Achievement")),
        ),
        RawOpportunity(
            title="HackGT 10 - Hexlabs Innovation Challenge",
            description=(
                "Georgia Tech's flagship hackathon returns! Build amazing projects with cutting-edge "
                "technology. Featuring workshops, mentorship, and networking opportunities."
            ),
            organizer="Georgia Institute of Technology",
            mode="offline",
            location=Location(city="Atlanta", state="GA", country="USA", venue="Georgia Tech Campus"),
            dates=EventDates(start_date=day(60), end_date=day(62), registration_deadline=day(45)),
            skills_required=["React", "Node.js", "Python", "Machine Learning", "Blockchain", "DevOps"],
            external_url="https://hack.gt",
            source=source("hackgt-10-2026"),
            tags=["mlh", "hackathon", "georgia-tech", "innovation", "technology"],
            eligibility={"education_level": ["undergraduate", "graduate"],
                         "other_requirements": "Students and recent graduates welcome"},
            registration={"is_open": True, "fee": {"amount": 0, "currency": "USD"}, "max_participants": 800},
            difficulty_level="intermediate",
            team_size={"min": 1, "max": 4},
            themes=["AR/VR", "Cybersecurity", "Fintech", "Health Tech", "Smart Cities"],
            prizes=_prizes("$6000", "$3000", "$1500", ("Grand Prize", "Second Place", "Third Place")),
        ),
        RawOpportunity(
            title="CalHacks 11.0 - Berkeley's Premier Hackathon",
            description=(
                "UC Berkeley's largest hackathon! Join us for 36 hours of hacking, learning, and building "
                "amazing projects. Open to hackers of all skill levels worldwide."
            ),
            organizer="UC Berkeley",
            mode="hybrid",
            location=Location(city="Berkeley", state="CA", country="USA", venue="UC Berkeley Campus"),
            dates=EventDates(start_date=day(75), end_date=day(77), registration_deadline=day(60)),
            skills_required=["JavaScript", "Python", "Swift", "Kotlin", "Data Science", "Design"],
            external_url="https://calhacks.io",
            source=source("calhacks-11-2026"),
            tags=["mlh", "hackathon", "berkeley", "california", "innovation"],
            eligibility={"education_level": ["undergraduate", "graduate", "high_school"],
                         "other_requirements": "Open to all students"},
            registration={"is_open": True, "fee": {"amount": 0, "currency": "USD"}, "max_participants": 2000},
            team_size={"min": 1, "max": 4},
            themes=["Social Good", "Entertainment", "Productivity", "Education", "Open Innovation"],
            prizes=_prizes("$12000", "$6000", "$3000", ("Best Overall Project", "Most Impactful", "Most Creative")),
        ),
        RawOpportunity(
            title="MHacks 16 - University of Michigan Hackathon",
            description=(
                "The Midwest's premier hackathon! Build, learn, and connect with fellow hackers. "
                "Featuring industry mentors, workshops, and amazing prizes."
            ),
            organizer="University of Michigan",
            mode="offline",
            location=Location(city="Ann Arbor", state="MI", country="USA", venue="University of Michigan Campus"),
            dates=EventDates(start_date=day(90), end_date=day(92), registration_deadline=day(75)),
            skills_required=["C++", "Java", "Python", "React Native", "Flutter", "Game Development"],
            external_url="https://mhacks.org",
            source=source("mhacks-16-2026"),
            tags=["mlh", "hackathon", "michigan", "midwest", "university"],
            eligibility={"education_level": ["undergraduate", "graduate"],
                         "other_requirements": "Current students only"},
            registration={"is_open": True, "fee": {"amount": 0, "currency": "USD"}, "max_participants": 1000},
            difficulty_level="intermediate",
            team_size={"min": 1, "max": 4},
            themes=["Gaming", "Hardware", "Mobile Apps", "Web Development", "AI/ML"],
            prizes=_prizes("$7000", "$3500", "$1750", ("Grand Prize Winner", "Runner Up", "Third Place")),
        ),
    ]
