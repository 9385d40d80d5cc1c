from thexempt import models, services
from thexempt.reputation import ReputationProfile
from thexempt.repositories import UserRepository


def test_health_and_request_id(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert 'X-Request-ID' in r.headers
    echoed = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert echoed.headers['X-Request-ID'] == 'abc123'


def test_home_page_without_client_bundle(client):
    r = client.get('/')
    assert r.status_code == 200
    assert '/docs' in r.text


def test_recompute_badges_backfill(session):
    stale = models.User(email='stale-backfill@example.com', password_hash='x', name='stale',
                        reputation_points=600, badges=['Contributor'])
    duped = models.User(email='duped-backfill@example.com', password_hash='x', name='duped',
                        reputation_points=150, badges=['Contributor', 'Contributor'])
    session.add(stale)
    session.add(duped)
    session.commit()
    session.refresh(stale)
    session.refresh(duped)

    svc = services.ReputationService(session)
    preview = svc.recompute_badges(dry_run=True)
    by_user = {d['user_id']: d['added'] for d in preview['details']}
    assert by_user[stale.id] == ['Expert']
    assert by_user[duped.id] == []
    repo = UserRepository(session)
    assert repo.read_reputation(stale.id).badges == {'Contributor'}

    svc.recompute_badges()
    assert repo.read_reputation(stale.id) == ReputationProfile(points=600, badges={'Contributor', 'Expert'})
    session.refresh(duped)
    assert duped.badges == ['Contributor']
    again = svc.recompute_badges()
    assert stale.id not in {d['user_id'] for d in again['details']}
