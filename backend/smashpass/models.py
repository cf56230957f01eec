from smashpass import db


class Post(db.Model):
    __tablename__ = 'post'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    image_url = db.Column(db.String(512), nullable=True)
    bio = db.Column(db.Text, nullable=True)
    smashes = db.Column(db.Integer, default=0, nullable=False)
    passes = db.Column(db.Integer, default=0, nullable=False)
    total_votes = db.Column(db.Integer, default=0, nullable=False)
    votes = db.relationship('Vote', backref='post', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'image_url': self.image_url,
            'bio': self.bio,
            'smashes': self.smashes or 0,
            'passes': self.passes or 0,
            'total_votes': self.total_votes or 0,
        }


class Vote(db.Model):
    __tablename__ = 'vote'
    __table_args__ = (db.UniqueConstraint('post_id', 'voter_id', name='uq_vote_post_voter'),)
    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('post.id'), nullable=False, index=True)
    voter_id = db.Column(db.String(64), nullable=False)
    decision = db.Column(db.Integer, nullable=False)  # +1 smash, -1 pass
