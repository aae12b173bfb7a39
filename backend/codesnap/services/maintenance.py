"""
CodeSnap Backend — Maintenance Tasks
======================================

What:  Work that runs outside the request path:
       1. seed_example_pastes: inserts the example snippets, under fresh
          public ids, into an empty database (opt-in via SEED_EXAMPLES)
       2. ExpirySweeper: periodically deletes expired rows (opt-in via
          EXPIRY_SWEEP_INTERVAL_SECONDS)
Who:   Started from the application lifespan in main.py.

Both open their own sessions from the session factory; neither shares a
session with a request. Failures are logged and never stop the server.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codesnap.clock import Clock, utcnow
from codesnap.config import Settings
from codesnap.exceptions import CodeSnapError
from codesnap.services.paste_service import insert_with_fresh_id
from codesnap.services.paste_store import PasteStore

logger = logging.getLogger(__name__)

EXAMPLE_EXPIRY_DAYS = 30

# expires_in_days: None keeps the example forever
EXAMPLE_PASTES = [
    {
        "title": "Python DataFrame Operations",
        "language": "python",
        "author_name": "DataAnalyst",
        "tags": ["python", "pandas", "data-analysis"],
        "expires_in_days": EXAMPLE_EXPIRY_DAYS,
        "content": """import pandas as pd
import numpy as np

# Create a sample DataFrame
data = {
    'Name': ['John', 'Anna', 'Peter', 'Linda'],
    'Age': [28, 34, 29, 42],
    'City': ['New York', 'Paris', 'Berlin', 'London']
}

df = pd.DataFrame(data)
print(df.head())

# Basic operations
print("Mean age:", df['Age'].mean())
print("Oldest person:", df.loc[df['Age'].idxmax()])

# Filtering
adults = df[df['Age'] > 30]
print("Adults:")
print(adults)

# Grouping
by_city = df.groupby('City').mean()
print("Average age by city:")
print(by_city)""",
    },
    {
        "title": "JavaScript Array Methods",
        "language": "javascript",
        "author_name": "JSdev",
        "tags": ["javascript", "arrays", "functions"],
        "expires_in_days": EXAMPLE_EXPIRY_DAYS,
        "content": """// Common JavaScript Array Methods

const numbers = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10];

// Map: Transform each element
const doubled = numbers.map(num => num * 2);
console.log('Doubled:', doubled);

// Filter: Keep elements that pass a test
const evens = numbers.filter(num => num % 2 === 0);
console.log('Even numbers:', evens);

// Reduce: Accumulate values
const sum = numbers.reduce((total, num) => total + num, 0);
console.log('Sum:', sum);

// Find: Get first element that matches
const firstBigNumber = numbers.find(num => num > 5);
console.log('First number > 5:', firstBigNumber);

// Some: Check if at least one element passes a test
const hasEven = numbers.some(num => num % 2 === 0);
console.log('Has even numbers:', hasEven);

// Every: Check if all elements pass a test
const allPositive = numbers.every(num => num > 0);
console.log('All positive:', allPositive);""",
    },
    {
        "title": "Machine Learning with scikit-learn",
        "language": "python",
        "author_name": "MLEngineer",
        "tags": ["python", "machine-learning", "scikit-learn", "random-forest"],
        "expires_in_days": EXAMPLE_EXPIRY_DAYS,
        "content": """import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import StandardScaler
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import classification_report, confusion_matrix

# Load dataset (using Iris as an example)
from sklearn.datasets import load_iris
iris = load_iris()
X = iris.data
y = iris.target

# Split the data
X_train, X_test, y_train, y_test = train_test_split(X, y, test_size=0.2, random_state=42)

# Scale features
scaler = StandardScaler()
X_train_scaled = scaler.fit_transform(X_train)
X_test_scaled = scaler.transform(X_test)

# Train a Random Forest model
clf = RandomForestClassifier(n_estimators=100, random_state=42)
clf.fit(X_train_scaled, y_train)

# Make predictions
y_pred = clf.predict(X_test_scaled)

# Evaluate the model
print("Classification Report:")
print(classification_report(y_test, y_pred, target_names=iris.target_names))

print("Confusion Matrix:")
print(confusion_matrix(y_test, y_pred))

# Feature importance
feature_importances = clf.feature_importances_
for i, importance in enumerate(feature_importances):
    print(f"Feature {iris.feature_names[i]}: {importance:.4f}")""",
    },
    {
        "title": "Data Visualization with matplotlib",
        "language": "python",
        "author_name": "DataViz",
        "tags": ["python", "matplotlib", "data-visualization", "charts"],
        "expires_in_days": EXAMPLE_EXPIRY_DAYS,
        "content": """import matplotlib.pyplot as plt
import numpy as np

# Generate some sample data
x = np.linspace(0, 10, 100)
y1 = np.sin(x)
y2 = np.cos(x)
y3 = np.exp(-x/5) * np.sin(x)

# Create a figure with subplots
fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 8))

# First subplot
ax1.plot(x, y1, 'b-', label='sin(x)')
ax1.plot(x, y2, 'r-', label='cos(x)')
ax1.set_xlabel('x')
ax1.set_ylabel('y')
ax1.set_title('Sine and Cosine Functions')
ax1.grid(True)
ax1.legend()

# Second subplot
ax2.plot(x, y3, 'g-', label='exp(-x/5) * sin(x)')
ax2.set_xlabel('x')
ax2.set_ylabel('y')
ax2.set_title('Damped Sine Function')
ax2.grid(True)
ax2.legend()

plt.tight_layout()

# Example of a bar chart
categories = ['A', 'B', 'C', 'D', 'E']
values = [5, 7, 3, 8, 6]

plt.figure(figsize=(8, 6))
plt.bar(categories, values, color='skyblue')
plt.xlabel('Categories')
plt.ylabel('Values')
plt.title('Simple Bar Chart')
plt.grid(True, axis='y', linestyle='--', alpha=0.7)

plt.show()""",
    },
    {
        "title": "Top Transport pandas in python",
        "language": "python",
        "author_name": "Anonymous",
        "tags": ["python", "pandas", "transportation", "logistic-regression"],
        "expires_in_days": None,
        "content": """import pandas as pd
from sklearn.model_selection import KFold, cross_val_score
from sklearn.preprocessing import LabelEncoder
from sklearn.linear_model import LogisticRegression

df_temp = pd.read_csv("time_series_examples.csv")
df_long = df_temp.melt(id_vars=["Name"], var_name="Season")
X_orig = df_long[["Season"]]
y = df_long["value"]
X_encoded = LabelEncoder().fit_transform(X_orig.Season)
model = LogisticRegression(max_iter=1000)
cv = KFold(n_splits=5, shuffle=True, random_state=42)
cv_scores = cross_val_score(model, X_encoded.reshape(-1, 1), y, cv=cv, scoring='accuracy')
print(f"Accuracy: {cv_scores.mean():.2f} +/- {cv_scores.std():.2f}")""",
    },
]


async def seed_example_pastes(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    clock: Clock = utcnow,
) -> int:
    """
    Insert the example pastes if seeding is enabled and the table is empty.

    Returns:
        Number of pastes inserted (0 when disabled, non-empty, or on error).
    """
    if not settings.seed_examples:
        return 0

    inserted = 0
    try:
        async with session_factory() as session:
            store = PasteStore(session, clock=clock)
            if await store.count() > 0:
                logger.info("Skipping example seed: pastes table is not empty")
                return 0

            for example in EXAMPLE_PASTES:
                fields = dict(example)
                days = fields.pop("expires_in_days")
                expires_at = clock() + timedelta(days=days) if days is not None else None
                await insert_with_fresh_id(store, settings, expires_at=expires_at, **fields)
                inserted += 1
    except (SQLAlchemyError, CodeSnapError) as e:
        logger.error("Example seed failed after %d insert(s): %s", inserted, str(e))
        return inserted

    logger.info("Seeded %d example paste(s)", inserted)
    return inserted


class ExpirySweeper:
    """
    Background task that purges expired pastes every `interval` seconds.

    Reads already hide and lazily delete expired rows; the sweeper only
    reclaims rows nobody asks for again.

    Usage:
        sweeper = ExpirySweeper(session_factory, interval=300)
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        interval: float,
        clock: Clock = utcnow,
    ):
        if interval <= 0:
            raise ValueError("ExpirySweeper interval must be positive")
        self._session_factory = session_factory
        self.interval = interval
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="codesnap-expiry-sweeper")
        logger.info("Expiry sweeper started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiry sweeper stopped")

    async def sweep_once(self) -> int:
        """Run one purge in a fresh session. Errors are logged; returns rows removed."""
        try:
            async with self._session_factory() as session:
                return await PasteStore(session, clock=self._clock).purge_expired()
        except (SQLAlchemyError, CodeSnapError) as e:
            logger.error("Expiry sweep failed: %s", str(e))
            return 0

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.sweep_once()
