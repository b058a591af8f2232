#!/usr/bin/env python3

from datetime import datetime, timedelta
from decimal import Decimal

from src.config import settings
from src.database import SessionLocal, init_db
from src.models import Event, Reservation, Booking, ChatSession, MetroAccount, AccountTransaction

def create_seed_data():
    init_db()
    db = SessionLocal()
    
    try:
        print("🚀 Creating seed data for the ticket booking chatbot...")
        
        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(AccountTransaction).delete()
        db.query(MetroAccount).delete()
        db.query(ChatSession).delete()
        db.query(Booking).delete()
        db.query(Reservation).delete()
        db.query(Event).delete()
        
        # 1. Create Events
        print("Creating events...")
        today = datetime.now().replace(hour=0, minute=0, second=0, microsecond=0)
        event_data = [
            ("Sunburn Arena ft. Martin Garrix", "EDM night with the world's top DJ", "Mumbai",
             "NSCI Dome, Worli", 12, 20, 500, Decimal("2499.00")),
            ("Jazz by the Bay", "An evening of live jazz standards", "Mumbai",
             "Royal Opera House", 5, 19, 120, Decimal("1200.00")),
            ("Comedy Nights Live", "Stand-up showcase with five headliners", "Bangalore",
             "Good Shepherd Auditorium", 3, 20, 300, Decimal("799.00")),
            ("Tech Summit 2026", "Talks and workshops on cloud and AI", "Bangalore",
             "BIEC, Tumkur Road", 21, 9, 1000, Decimal("1500.00")),
            ("Classical Carnatic Evening", "Vocal and violin recital", "Chennai",
             "Music Academy", 8, 18, 250, Decimal("350.00")),
            ("Purple Line Express", "Majestic to Baiyappanahalli", "Bangalore",
             "Majestic - Baiyappanahalli", 1, 8, 200, Decimal("45.00")),
            ("Green Line Shuttle", "Yeshwanthpur to Jayanagar", "Bangalore",
             "Yeshwanthpur - Jayanagar", 1, 9, 200, Decimal("40.00")),
            ("Indie Rock Fest", "Three stages of independent bands", "Delhi",
             "Jawaharlal Nehru Stadium", 30, 16, 2000, Decimal("999.00")),
        ]
        
        events = []
        for title, description, city, venue, days_ahead, hour, seats, price in event_data:
            events.append(Event(
                title=title,
                description=description,
                city=city,
                venue=venue,
                event_date=today + timedelta(days=days_ahead, hours=hour),
                total_seats=seats,
                available_seats=seats,
                price=price,
                is_active=True
            ))
        db.add_all(events)
        db.flush()
        
        # 2. Create Metro Accounts
        print("Creating metro accounts...")
        accounts = [
            MetroAccount(phone="919990001001", name="Rahul Kumar", balance=settings.DEFAULT_ACCOUNT_BALANCE),
            MetroAccount(phone="919990001002", name="Priya Sharma", balance=Decimal("1500.00")),
            MetroAccount(phone="919990001003", name="Arjun Rao", balance=Decimal("20.00")),
        ]
        db.add_all(accounts)
        
        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - {len(events)} events")
        print(f"  - {len(accounts)} metro accounts")
        
    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
