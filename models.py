"""
Data models for the timetable scheduling system
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ModuleCategory(str, Enum):
    SPECIFIC = 'SPECIFIC'
    GENERAL = 'GENERAL'
    COMPLEMENTARY = 'COMPLEMENTARY'

    @classmethod
    def parse(cls, value) -> Optional['ModuleCategory']:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


class LessonType(str, Enum):
    PRIMARY = 'PRIMARY'
    SECONDARY = 'SECONDARY'
    TSS = 'TSS'


class PreferredTime(str, Enum):
    MORNING = 'MORNING'
    ANY = 'ANY'


@dataclass
class TeacherSubjectAssignment:
    teacher_id: int
    class_id: int
    subject_id: int
    periods_per_week: int
    teacher_name: str = ''
    subject_name: str = ''
    class_name: str = ''
    class_level: str = ''
    subject_level: str = ''


@dataclass
class TrainerModuleAssignment:
    trainer_id: int
    class_id: int
    module_id: int
    total_hours: int
    category: Optional[ModuleCategory]
    trainer_name: str = ''
    module_name: str = ''
    class_name: str = ''
    class_level: str = ''
    module_level: str = ''


@dataclass
class TeacherConstraints:
    teacher_id: int
    unavailable_days: List[str] = field(default_factory=list)
    unavailable_periods: List[int] = field(default_factory=list)


@dataclass
class LessonBlock:
    teacher_id: int
    class_id: int
    block_size: int
    lesson_index: int
    total_lessons: int
    lesson_type: LessonType
    priority: int
    preferred_time: PreferredTime
    periods_per_week: int
    level: str
    subject_id: Optional[int] = None
    module_id: Optional[int] = None
    category: Optional[ModuleCategory] = None
    teacher_name: str = ''
    subject_name: str = ''
    module_name: str = ''
    class_name: str = ''

    @property
    def is_module(self) -> bool:
        return self.module_id is not None

    @property
    def course_key(self):
        """(teacher, class, subject-or-module) triple shared by every block of one assignment."""
        if self.module_id is not None:
            return (self.teacher_id, self.class_id, 'module', self.module_id)
        return (self.teacher_id, self.class_id, 'subject', self.subject_id)


@dataclass
class ScheduledLesson:
    teacher_id: int
    class_id: int
    day: str
    period: int
    time_slot_id: Optional[int]
    subject_id: Optional[int] = None
    module_id: Optional[int] = None

    @property
    def course_key(self):
        if self.module_id is not None:
            return (self.teacher_id, self.class_id, 'module', self.module_id)
        return (self.teacher_id, self.class_id, 'subject', self.subject_id)


@dataclass
class Conflict:
    message: str
    suggestions: List[str] = field(default_factory=list)
    type: str = 'unassigned'

    def to_dict(self) -> Dict:
        return {'type': self.type, 'message': self.message, 'suggestions': list(self.suggestions)}


@dataclass
class GenerationResult:
    success: bool
    conflicts: List[Conflict] = field(default_factory=list)
    lessons_scheduled: int = 0

    def to_dict(self) -> Dict:
        return {
            'success': self.success,
            'conflicts': [c.to_dict() for c in self.conflicts],
            'lessonsScheduled': self.lessons_scheduled,
        }


@dataclass
class NameLookup:
    teachers: Dict[int, str] = field(default_factory=dict)
    classes: Dict[int, str] = field(default_factory=dict)
    subjects: Dict[int, str] = field(default_factory=dict)
    modules: Dict[int, str] = field(default_factory=dict)

    def teacher(self, teacher_id) -> str:
        return self.teachers.get(teacher_id, 'Unknown Teacher')

    def school_class(self, class_id) -> str:
        return self.classes.get(class_id, 'Unknown Class')

    def subject(self, subject_id) -> str:
        return self.subjects.get(subject_id, 'Unknown Subject')

    def module(self, module_id) -> str:
        return self.modules.get(module_id, 'Unknown Module')
