# create_owner.py
from db import init_db
from wallet import generate_keypair

def main():
    public_key = input("Owner public key (blank to generate one): ").strip()
    private_key = None
    if not public_key:
        private_key, public_key = generate_keypair()
    owner = init_db(owner=public_key)
    if owner != public_key:
        print(f"Registry already initialised; owner is {owner}")
        return
    print(f"Registry owner: {public_key}")
    if private_key:
        print(f"Private key (store it now, it is not saved): {private_key}")

if __name__ == "__main__":
    main()
