from ..domain.entities import Course, Lesson, Level

CATEGORIES = [
    {"id": "1", "name": "Penetration Testing", "icon": "swords"},
    {"id": "2", "name": "Malware Analysis", "icon": "bug"},
    {"id": "3", "name": "Defensive Security", "icon": "shield"},
    {"id": "4", "name": "Cryptography", "icon": "key"},
    {"id": "5", "name": "Network Security", "icon": "network"},
]

_INTRO_VIDEO = "https://www.youtube.com/embed/kmJlnUfMd7I?si=fguH9RDUcWf20PSt"
_TOOLS_VIDEO = "https://www.youtube.com/embed/kUovJpWqEMk?si=sp9ueb-oEAbHM0xc"
_METHOD_VIDEO = "https://www.youtube.com/embed/X3DVaMnl5n8?si=QvfstU6T6gx9zCZw"


def seed_courses() -> list[Course]:
    """Demo catalog used when no course document has been saved yet."""
    return [
        Course(
            id="1",
            title="Penetration Testing Fundamentals",
            description="Learn the basics of penetration testing and how to discover system vulnerabilities",
            image="https://images.unsplash.com/photo-1550751827-4bd374c3f58b",
            instructor="Ahmed Mohamed",
            duration="8 Hours",
            level=Level.BEGINNER,
            category="Penetration Testing",
            price=49.99,
            content=[
                Lesson(id="1-1", title="Introduction to Penetration Testing", duration="45 Minutes",
                       video_url=_INTRO_VIDEO,
                       description="Learn the basic concepts of penetration testing and its importance in cybersecurity"),
                Lesson(id="1-2", title="Penetration Testing Tools", duration="60 Minutes",
                       video_url=_TOOLS_VIDEO,
                       description="Explore the essential tools used in penetration testing"),
                Lesson(id="1-3", title="Penetration Testing Methodology", duration="55 Minutes",
                       video_url=_METHOD_VIDEO,
                       description="Learn the methodical steps for conducting professional penetration testing"),
            ],
        ),
        Course(
            id="2",
            title="Advanced Malware Analysis",
            description="Advanced course in analyzing and understanding malware and methods of combating it",
            image="https://images.unsplash.com/photo-1526374965328-7f61d4dc18c5",
            instructor="Sarah Ahmed",
            duration="12 Hours",
            level=Level.ADVANCED,
            category="Malware Analysis",
            price=79.99,
            content=[
                Lesson(id="2-1", title="Introduction to Malware Analysis", duration="50 Minutes",
                       video_url=_INTRO_VIDEO,
                       description="Learn the basics of malware analysis and its importance"),
                Lesson(id="2-2", title="Advanced Analysis Tools", duration="75 Minutes",
                       video_url=_METHOD_VIDEO,
                       description="Explore advanced tools used in malware analysis"),
            ],
        ),
        Course(
            id="3",
            title="Network Security Basics",
            description="Learn the basics of network security and how to protect infrastructure",
            image="https://images.unsplash.com/photo-1558494949-ef010cbdcc31",
            instructor="Mohamed Ali",
            duration="10 Hours",
            level=Level.BEGINNER,
            category="Network Security",
            price=59.99,
            content=[
                Lesson(id="3-1", title="Network Security Fundamentals", duration="60 Minutes",
                       video_url=_INTRO_VIDEO,
                       description="Learn the basic concepts of network security"),
                Lesson(id="3-2", title="Security Protocols", duration="55 Minutes",
                       video_url=_METHOD_VIDEO,
                       description="Study different security protocols and how to implement them"),
            ],
        ),
    ]
