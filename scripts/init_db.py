from listing_capture.db.session import init_db

if __name__ == "__main__":
    print("Initializing database...")
    if init_db():
        print("Database tables created successfully!")
    else:
        print("DATABASE_URL not set, nothing to do.")
