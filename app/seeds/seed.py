from app import db
from app.models import Book


books = [
    {
        'title': 'The Himalayan Trail',
        'author': 'Anita Shrestha',
        'description': 'A travel memoir across the high passes of Nepal.',
        'pdf_url': '/uploads/pdfs/the_himalayan_trail.pdf',
    },
    {
        'title': 'Introduction to Algorithms Notes',
        'author': 'Ramesh Adhikari',
        'description': 'Lecture notes on sorting, graphs and dynamic programming.',
        'pdf_url': '/uploads/pdfs/introduction_to_algorithms_notes.pdf',
    },
    {
        'title': 'Muna Madan',
        'author': 'Laxmi Prasad Devkota',
        'description': 'The classic Nepali narrative poem.',
        'pdf_url': 'https://www.gutenberg.org/files/muna_madan.pdf',
    },
]


def seed_books():
    """Insert the sample books when the catalogue is empty. Returns how many were added."""
    if Book.query.first() is not None:
        return 0

    for data in books:
        db.session.add(Book(**data))
    db.session.commit()
    return len(books)
