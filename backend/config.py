import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizbuzz.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Single host identity (not a player, never scored)
    HOST_NAME = os.environ.get('HOST_NAME', 'quizmaster')
    HOST_PASSWORD = os.environ.get('HOST_PASSWORD', 'quizmaster')
    # Scoring
    CORRECT_POINTS = int(os.environ.get('CORRECT_POINTS', '5'))
    WRONG_ANSWER_PENALTY = int(os.environ.get('WRONG_ANSWER_PENALTY', '0'))
    CONSOLATION_POINTS = int(os.environ.get('CONSOLATION_POINTS', '1'))
    # Unknown names register with their first password when enabled
    ALLOW_PLAYER_REGISTRATION = os.environ.get('ALLOW_PLAYER_REGISTRATION', '1') not in ('0', 'false', 'False', '')
    # 'open' or 'closed'
    INITIAL_BUZZER_STATUS = os.environ.get('INITIAL_BUZZER_STATUS', 'closed')
    # 'clamp' or 'wrap'
    QUESTION_INDEX_POLICY = os.environ.get('QUESTION_INDEX_POLICY', 'clamp')
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '10'))
