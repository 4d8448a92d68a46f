from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager

from tokens import TokenManager

db = SQLAlchemy()                 # Creating an instance of SQLAlchemy
bcrypt = Bcrypt()                 # Creating an instance of Bcrypt
login_manager = LoginManager()    # Resolves the current user from the bearer token
tokens = TokenManager()           # Issues and checks JWT session tokens
