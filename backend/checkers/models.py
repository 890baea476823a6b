from checkers import db


class UserRecord(db.Model):
    __tablename__ = 'user_record'
    identity = db.Column(db.String(64), primary_key=True)
    wins = db.Column(db.Integer, default=0, nullable=False)
    matches = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            'wins': self.wins or 0,
            'matches': self.matches or 0,
        }
