"""
Reads a school's assignments, time grid and teacher constraints through the repository.
"""
import logging
from typing import Dict, List

from database import SchoolRepository, split_csv
from models import NameLookup, TeacherConstraints, TeacherSubjectAssignment, TrainerModuleAssignment
from time_grid import TimeSlot

logger = logging.getLogger(__name__)


class SchoolNotFoundError(LookupError):
    pass


class AssignmentLoader:
    def __init__(self, repository: SchoolRepository, school_id):
        self.repository = repository
        self.school_id = school_id

    def ensure_school(self):
        school = self.repository.get_school(self.school_id)
        if school is None:
            raise SchoolNotFoundError(f'School {self.school_id} not found')
        return school

    def load_teacher_subject_assignments(self) -> List[TeacherSubjectAssignment]:
        assignments = self.repository.list_teacher_subject_assignments(self.school_id)
        logger.debug('Loaded %d teacher-class-subject assignments for school %s', len(assignments), self.school_id)
        return assignments

    def load_trainer_module_assignments(self) -> List[TrainerModuleAssignment]:
        assignments = self.repository.list_trainer_module_assignments(self.school_id)
        logger.debug('Loaded %d trainer-class-module assignments for school %s', len(assignments), self.school_id)
        return assignments

    def load_time_slots(self) -> List[TimeSlot]:
        return self.repository.list_time_slots(self.school_id)

    def load_teacher_constraints(self) -> Dict[int, TeacherConstraints]:
        constraints = {}
        for row in self.repository.list_teachers(self.school_id):
            periods = []
            for token in split_csv(row['unavailable_periods']):
                if token.upper().startswith('P'):
                    token = token[1:]
                if token.isdigit():
                    periods.append(int(token))
                else:
                    logger.warning('Ignoring unavailable period %r for teacher %s', token, row['teacher_id'])
            constraints[row['teacher_id']] = TeacherConstraints(
                teacher_id=row['teacher_id'],
                unavailable_days=[d.upper() for d in split_csv(row['unavailable_days'])],
                unavailable_periods=periods,
            )
        return constraints

    def load_name_lookup(self) -> NameLookup:
        return NameLookup(
            teachers={r['teacher_id']: r['name'] for r in self.repository.list_teachers(self.school_id, active_only=False)},
            classes={r['class_id']: r['name'] for r in self.repository.list_classes(self.school_id)},
            subjects={r['subject_id']: r['name'] for r in self.repository.list_subjects(self.school_id)},
            modules={r['module_id']: r['name'] for r in self.repository.list_modules(self.school_id)},
        )
