from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class Student(db.Model):
    __tablename__ = "students"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True, unique=True)  # login account, if any
    roll = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())

    def __repr__(self):
        return f"<Student {self.roll}>"


class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    section = db.Column(db.String(10), nullable=True)
    semester = db.Column(db.String(20), nullable=True)
    year = db.Column(db.Integer, nullable=True)
    course_type = db.Column(db.String(10), nullable=False, default="theory")  # theory, lab, hybrid
    teacher_id = db.Column(db.Integer, nullable=True)  # owning teacher's user id
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())

    enrollments = db.relationship(
        "Enrollment", backref="course", cascade="all, delete-orphan", order_by="Enrollment.id"
    )
    assessments = db.relationship("Assessment", backref="course", cascade="all, delete-orphan")
    sessions = db.relationship(
        "AttendanceSession", backref="course", cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "title": self.title,
            "section": self.section,
            "semester": self.semester,
            "year": self.year,
            "course_type": self.course_type,
        }

    def __repr__(self):
        return f"<Course {self.code} ({self.course_type})>"


class Enrollment(db.Model):
    __tablename__ = "enrollments"
    __table_args__ = (db.UniqueConstraint("course_id", "student_id", name="uq_enrollment"),)

    # Insertion id doubles as the "entered" roster order.
    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())

    student = db.relationship("Student")


class Assessment(db.Model):
    __tablename__ = "assessments"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    full_marks = db.Column(db.Float, nullable=False)
    order = db.Column("sort_order", db.Integer, nullable=True)
    category = db.Column(db.String(20), nullable=True)  # explicit category; NULL -> name heuristic
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())

    marks = db.relationship("Mark", backref="assessment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Assessment {self.name} /{self.full_marks}>"


class Mark(db.Model):
    __tablename__ = "marks"
    __table_args__ = (db.UniqueConstraint("student_id", "assessment_id", name="uq_mark"),)

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    assessment_id = db.Column(db.Integer, db.ForeignKey("assessments.id"), nullable=False)
    obtained_marks = db.Column(db.Float, nullable=False, default=0)


class AttendanceSession(db.Model):
    __tablename__ = "attendance_sessions"
    __table_args__ = (
        db.UniqueConstraint("course_id", "session_date", "period", name="uq_session"),
    )

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    session_date = db.Column(db.Date, nullable=False)
    period = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=db.func.current_timestamp())

    records = db.relationship(
        "AttendanceRecord", backref="session", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<AttendanceSession {self.session_date} P{self.period}>"


class AttendanceRecord(db.Model):
    __tablename__ = "attendance_records"
    __table_args__ = (
        db.UniqueConstraint("session_id", "student_id", name="uq_attendance_record"),
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("attendance_sessions.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    present = db.Column(db.Boolean, nullable=False, default=False)


class AttendanceSummary(db.Model):
    __tablename__ = "attendance_summaries"
    __table_args__ = (
        db.UniqueConstraint("course_id", "student_id", name="uq_attendance_summary"),
    )

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id"), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey("students.id"), nullable=False)
    total_classes = db.Column(db.Integer, nullable=False, default=0)
    attended_classes = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(
        db.DateTime,
        default=db.func.current_timestamp(),
        onupdate=db.func.current_timestamp(),
    )
