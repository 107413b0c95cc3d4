from workorders.schemas.actor_schemas import Actor
from workorders.utils.get_user import create_access_token
import sys

def issue_token(user_id: str, name: str, email: str = ""):
    token = create_access_token(Actor(id=user_id, name=name, email=email))
    print(token)

if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("usage: python -m workorders.scripts.issue_token <user_id> <name> [email]")
        sys.exit(1)
    issue_token(*sys.argv[1:4])
