from quizbuzz import db, bcrypt


class PlayerRecord(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    # Case-sensitive primary identity
    name = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(128), nullable=False, default='')
    total_score = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    incorrect_answers = db.Column(db.Integer, nullable=False, default=0)
    total_questions_answered = db.Column(db.Integer, nullable=False, default=0)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def reset_stats(self):
        self.total_score = 0
        self.correct_answers = 0
        self.incorrect_answers = 0
        self.total_questions_answered = 0

    def stats_dict(self):
        return {
            'totalScore': self.total_score or 0,
            'correctAnswers': self.correct_answers or 0,
            'incorrectAnswers': self.incorrect_answers or 0,
            'totalQuestionsAnswered': self.total_questions_answered or 0,
        }

    def to_dict(self):
        payload = {'name': self.name}
        payload.update(self.stats_dict())
        return payload


class QuestionRecord(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    position = db.Column(db.Integer, nullable=False, index=True)
    prompt = db.Column(db.Text, nullable=False)
    expected_answer = db.Column(db.Text, nullable=False, default='')
